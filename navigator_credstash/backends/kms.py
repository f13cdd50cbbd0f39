"""
AWS KMS key service.

Generates 64-byte data keys and unwraps stored data keys. When an
encryption context is given it is passed as ``EncryptionContext``; KMS
refuses to unwrap a key under a context different from the one used to
generate it. Errors raised by botocore are not caught here.
"""
import logging
from collections.abc import Mapping
from typing import Optional

import aioboto3

from . import DataKey

logger = logging.getLogger("navigator.credstash")


def _context_args(context: Optional[Mapping[str, str]]) -> dict:
    if context:
        return {"EncryptionContext": dict(context)}
    return {}


class AWSKeyService:
    """Key service backed by AWS KMS through aioboto3."""

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint: Optional[str] = None,
        profile: Optional[str] = None,
    ):
        self._region = region
        self._endpoint = endpoint or None
        self._session = aioboto3.Session(profile_name=profile)

    def _client(self):
        return self._session.client(
            "kms", region_name=self._region, endpoint_url=self._endpoint,
        )

    async def generate_data_key(
        self,
        key_id: str,
        num_bytes: int,
        context: Optional[Mapping[str, str]] = None,
    ) -> DataKey:
        async with self._client() as kms:
            response = await kms.generate_data_key(
                KeyId=key_id,
                NumberOfBytes=num_bytes,
                **_context_args(context),
            )
        logger.debug("Generated data key with %s", key_id)
        return DataKey(
            plaintext=response.get("Plaintext"),
            ciphertext_blob=response.get("CiphertextBlob"),
        )

    async def decrypt(
        self,
        wrapped_key: bytes,
        context: Optional[Mapping[str, str]] = None,
    ) -> Optional[bytes]:
        async with self._client() as kms:
            response = await kms.decrypt(
                CiphertextBlob=wrapped_key,
                **_context_args(context),
            )
        return response.get("Plaintext")
