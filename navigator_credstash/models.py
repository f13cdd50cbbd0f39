"""
Record models — the at-rest shape of a secret version.

A stored item is exactly::

    {name, version, key, contents, hmac, digest}

where ``key`` is the base64 KMS-wrapped data key, ``contents`` the base64
ciphertext, ``hmac`` the hex HMAC over the ciphertext and ``digest`` the
HMAC digest name. This shape is shared with other credstash clients.
"""
import base64
import binascii
from collections.abc import Mapping
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict

from .crypto import DEFAULT_DIGEST

ITEM_FIELDS = ("name", "version", "key", "contents", "hmac", "digest")


class SecretVersion(NamedTuple):
    """A (name, version) pair returned by listings."""

    name: str
    version: str


class SecretRecord(BaseModel):
    """One immutable secret version."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    wrapped_key: bytes
    ciphertext: bytes
    hmac: str
    digest: str = DEFAULT_DIGEST

    def to_item(self) -> dict[str, str]:
        """Return the wire shape stored in the table."""
        return {
            "name": self.name,
            "version": self.version,
            "key": base64.b64encode(self.wrapped_key).decode("ascii"),
            "contents": base64.b64encode(self.ciphertext).decode("ascii"),
            "hmac": self.hmac,
            "digest": self.digest,
        }

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "SecretRecord":
        """Build a record from a stored item.

        Older writers may omit ``digest`` (sha256 is assumed) or store
        ``hmac`` as binary (decoded as UTF-8 text).

        Raises:
            ValueError: If a required field is missing or not valid base64.
        """
        missing = [f for f in ("name", "version", "key", "contents", "hmac") if f not in item]
        if missing:
            raise ValueError(f"Stored item is missing field(s): {missing}")
        hmac = item["hmac"]
        if isinstance(hmac, (bytes, bytearray)):
            hmac = bytes(hmac).decode("utf-8")
        try:
            wrapped_key = base64.b64decode(item["key"], validate=True)
            ciphertext = base64.b64decode(item["contents"], validate=True)
        except binascii.Error as err:
            raise ValueError(
                f"Stored item {item['name']!r} v{item['version']} "
                f"is not valid base64: {err}"
            ) from err
        return cls(
            name=item["name"],
            version=item["version"],
            wrapped_key=wrapped_key,
            ciphertext=ciphertext,
            hmac=hmac,
            digest=item.get("digest") or DEFAULT_DIGEST,
        )

    def __repr__(self) -> str:
        return f"<SecretRecord name={self.name!r} version={self.version!r}>"
