"""Collaborator interfaces used by :class:`~navigator_credstash.store.SecretStore`.

A key service wraps and unwraps data keys; a secret table stores items in
the wire shape described in :mod:`navigator_credstash.models`. The AWS
implementations live in :mod:`.kms` and :mod:`.dynamodb`.
"""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class DataKey:
    """Result of GenerateDataKey. Either part may be absent on failure."""

    plaintext: Optional[bytes] = field(repr=False)
    ciphertext_blob: Optional[bytes]


@dataclass
class ScanPage:
    """One page of a table scan; ``last_key`` is None on the last page."""

    items: list[dict[str, Any]]
    last_key: Optional[dict[str, Any]] = None


class KeyService(Protocol):
    async def generate_data_key(
        self,
        key_id: str,
        num_bytes: int,
        context: Optional[Mapping[str, str]] = None,
    ) -> DataKey:
        ...

    async def decrypt(
        self,
        wrapped_key: bytes,
        context: Optional[Mapping[str, str]] = None,
    ) -> Optional[bytes]:
        ...


class SecretTable(Protocol):
    async def put(self, item: Mapping[str, Any]) -> None:
        """Store a new item; raise DuplicateVersionError if it exists."""
        ...

    async def query(
        self,
        name: str,
        consistent_read: bool = False,
        descending: bool = True,
        projection: Optional[Sequence[str]] = None,
    ) -> list[dict[str, Any]]:
        ...

    async def scan(
        self,
        projection: Optional[Sequence[str]] = None,
        start_key: Optional[Mapping[str, Any]] = None,
    ) -> ScanPage:
        ...

    async def delete(self, name: str, version: str) -> None:
        ...


__all__ = ["DataKey", "ScanPage", "KeyService", "SecretTable"]
