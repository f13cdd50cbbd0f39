"""Credstash error taxonomy.

Callers can tell a missing secret (``NotFoundError``) from a secret that is
present but corrupt or bound to another context (``IntegrityError``,
``DecodingError``) and from a key-service failure (``KeyServiceError``).
Errors raised by the AWS clients are not wrapped.
"""
from typing import Optional


class CredstashError(Exception):
    """Base class for all credstash errors."""


class NotFoundError(CredstashError):
    """No record (or no record with the requested version) for a name."""

    def __init__(self, name: str, version: Optional[str] = None):
        self.name = name
        self.version = version
        if version is None:
            message = f"Secret '{name}' not found"
        else:
            message = f"Version '{version}' of secret '{name}' not found"
        super().__init__(message)


class IntegrityError(CredstashError):
    """HMAC verification failed: the record is tampered, corrupt, or was
    encrypted under a different encryption context."""


class DecodingError(CredstashError):
    """Decrypted bytes are not valid UTF-8."""


class KeyServiceError(CredstashError):
    """The key service did not return usable key material."""


class KeyGenerationError(KeyServiceError):
    """GenerateDataKey returned no plaintext or no wrapped key."""


class KeyUnwrapError(KeyServiceError):
    """Decrypt of the wrapped data key returned no plaintext."""


class DuplicateVersionError(CredstashError):
    """A record with the same name and version already exists."""

    def __init__(self, name: str, version: str):
        self.name = name
        self.version = version
        super().__init__(
            f"Version '{version}' of secret '{name}' already exists"
        )


class UnsupportedDigestError(CredstashError, ValueError):
    """The HMAC digest name is not supported."""


class TableNotFoundError(CredstashError):
    """The credential table does not exist."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(
            f"Credstash table '{table}' not found. Please create it first. "
            "You can run 'credstasher setup' to create it."
        )
