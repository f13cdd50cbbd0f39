"""
SecretStore — Versioned secrets sealed with KMS data keys.

Provides the public API of the credential store:
- ``put(name, secret)`` — seal a new version with a fresh data key
- ``get(name, version)`` — unwrap, verify and decrypt a version (latest by default)
- ``delete(name, version, all_versions)`` — remove one or every version
- ``versions(name)`` / ``list_secrets()`` — enumerate stored versions

Records are append-only: a put always creates a new ``(name, version)``
item and never overwrites one.

Security Note:
    Never log plaintext, data keys or ciphertext values. Only log secret
    names, versions and table names.
"""
import logging
from collections.abc import Mapping
from typing import Optional

from .backends import KeyService, SecretTable
from .config import DEFAULT_KMS_KEY_ID, StashConfig, resolve_config
from .crypto import DATA_KEY_SIZE, DEFAULT_DIGEST, decrypt_secret, encrypt_secret, get_digest
from .exceptions import KeyGenerationError, KeyUnwrapError, NotFoundError
from .models import SecretRecord, SecretVersion
from .versions import (
    next_version,
    select_for_delete,
    select_for_read,
    sort_descending,
    validate_version,
)

logger = logging.getLogger("navigator.credstash")

_LIST_PROJECTION = ("name", "version")


class SecretStore:
    """Credential store over a key service and a secret table.

    Every operation is a coroutine and may suspend on each call to the
    key service or the table; the store itself keeps no mutable state.
    """

    def __init__(
        self,
        table: SecretTable,
        key_service: KeyService,
        kms_key_id: str = DEFAULT_KMS_KEY_ID,
        digest: str = DEFAULT_DIGEST,
    ):
        get_digest(digest)
        self._table = table
        self._kms = key_service
        self.kms_key_id = kms_key_id
        self.digest = digest

    @classmethod
    def from_config(cls, config: Optional[StashConfig] = None) -> "SecretStore":
        """Build a store backed by DynamoDB and AWS KMS.

        Args:
            config: Resolved configuration; read from the environment if None.
        """
        from .backends.dynamodb import DynamoTable
        from .backends.kms import AWSKeyService

        config = config or resolve_config()
        table = DynamoTable(
            config.table,
            region=config.region,
            endpoint=config.dynamodb_endpoint,
            profile=config.profile,
        )
        key_service = AWSKeyService(
            region=config.kms_region,
            endpoint=config.kms_endpoint,
            profile=config.profile,
        )
        return cls(
            table, key_service, kms_key_id=config.kms_key_id, digest=config.digest,
        )

    @property
    def table(self) -> SecretTable:
        return self._table

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def versions(self, name: str) -> list[str]:
        """Return every stored version of a secret (table order)."""
        items = await self._table.query(
            name, consistent_read=True, projection=_LIST_PROJECTION,
        )
        return [item["version"] for item in items]

    async def put(
        self,
        name: str,
        secret: str,
        version: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
        kms_key_id: Optional[str] = None,
    ) -> str:
        """Encrypt and store a new version of a secret.

        Args:
            name: Secret name.
            secret: Secret value.
            version: Explicit version; the next free version if omitted.
            context: KMS encryption context, required again on ``get``.
            kms_key_id: KMS key to wrap the data key with.

        Returns:
            The version written.

        Raises:
            ValueError: If the explicit version is not a positive integer.
            KeyGenerationError: If KMS returned no usable data key.
            DuplicateVersionError: If the version already exists.
        """
        if not name:
            raise ValueError("Secret name cannot be empty")
        if version is None:
            version = next_version(await self.versions(name))
        else:
            validate_version(version)

        key_id = kms_key_id or self.kms_key_id
        data_key = await self._kms.generate_data_key(key_id, DATA_KEY_SIZE, context)
        if not data_key.plaintext or not data_key.ciphertext_blob:
            raise KeyGenerationError(
                f"Failed to generate data key with {key_id}"
            )

        sealed = encrypt_secret(secret, data_key.plaintext, self.digest)
        record = SecretRecord(
            name=name,
            version=version,
            wrapped_key=data_key.ciphertext_blob,
            ciphertext=sealed.ciphertext,
            hmac=sealed.hmac,
            digest=sealed.digest,
        )
        await self._table.put(record.to_item())
        logger.debug("Credstash put: name=%s version=%s", name, version)
        return version

    async def get(
        self,
        name: str,
        version: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Decrypt and return a secret.

        Args:
            name: Secret name.
            version: Exact version to read; the highest version if omitted.
            context: KMS encryption context used on ``put``.

        Returns:
            The plaintext secret.

        Raises:
            NotFoundError: If the secret or the version does not exist.
            KeyUnwrapError: If KMS did not unwrap the data key.
            IntegrityError: If the HMAC does not match.
            DecodingError: If the plaintext is not UTF-8.
        """
        items = await self._table.query(name, consistent_read=True, descending=True)
        # select on (name, version) only; other versions may be foreign or malformed
        by_version = {item["version"]: item for item in items}
        stored = sort_descending([SecretVersion(name, v) for v in by_version])
        selected = select_for_read(name, stored, version)
        record = SecretRecord.from_item(by_version[selected.version])

        data_key = await self._kms.decrypt(record.wrapped_key, context)
        if not data_key:
            raise KeyUnwrapError(
                f"Failed to decrypt data key of secret '{name}' "
                f"version '{record.version}'"
            )
        plaintext = decrypt_secret(
            record.ciphertext, record.hmac, record.digest, data_key,
        )
        logger.debug("Credstash get: name=%s version=%s", name, record.version)
        return plaintext

    async def delete(
        self,
        name: str,
        version: Optional[str] = None,
        all_versions: bool = False,
    ) -> list[str]:
        """Delete one version (the latest by default) or every version.

        Deletion is best-effort: each selected version is attempted, and
        the first failure is raised once all of them have been tried.

        Returns:
            The versions deleted.

        Raises:
            NotFoundError: If the secret or the requested version does not exist.
        """
        stored = await self.versions(name)
        if not stored:
            raise NotFoundError(name)

        targets = select_for_delete(stored, version=version, delete_all=all_versions)
        for target in targets:
            if target not in stored:
                raise NotFoundError(name, target)
        deleted = []
        first_error = None
        for target in targets:
            try:
                await self._table.delete(name, target)
            except Exception as err:
                logger.error(
                    "Failed to delete secret name=%s version=%s: %s",
                    name, target, err,
                )
                if first_error is None:
                    first_error = err
                continue
            deleted.append(target)
        if first_error is not None:
            raise first_error
        logger.debug("Credstash delete: name=%s versions=%s", name, deleted)
        return deleted

    async def list_secrets(self) -> list[SecretVersion]:
        """Return the (name, version) pair of every stored record."""
        secrets = []
        start_key = None
        while True:
            page = await self._table.scan(_LIST_PROJECTION, start_key)
            secrets.extend(
                SecretVersion(item["name"], item["version"]) for item in page.items
            )
            start_key = page.last_key
            if not start_key:
                break
        logger.debug("Credstash list: %d record(s)", len(secrets))
        return secrets
