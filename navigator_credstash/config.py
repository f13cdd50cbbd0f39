"""
Credstash Configuration — AWS locations and defaults.

Each setting is resolved with the precedence::

    explicit argument > environment variable > default

Environment variables:
    AWS_REGION, KMS_REGION, CREDSTASH_TABLE, CREDSTASH_KMS_KEY_ID,
    AWS_PROFILE, DYNAMODB_ENDPOINT, KMS_ENDPOINT, CREDSTASH_DIGEST
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, field_validator

from .crypto import DEFAULT_DIGEST, get_digest

logger = logging.getLogger("navigator.credstash")

DEFAULT_REGION = "us-east-1"
DEFAULT_TABLE = "credential-store"
DEFAULT_KMS_KEY_ID = "alias/credstash"

# field -> (environment variable, default)
_SETTINGS = {
    "region": ("AWS_REGION", DEFAULT_REGION),
    "kms_region": ("KMS_REGION", None),
    "table": ("CREDSTASH_TABLE", DEFAULT_TABLE),
    "kms_key_id": ("CREDSTASH_KMS_KEY_ID", DEFAULT_KMS_KEY_ID),
    "profile": ("AWS_PROFILE", None),
    "dynamodb_endpoint": ("DYNAMODB_ENDPOINT", None),
    "kms_endpoint": ("KMS_ENDPOINT", None),
    "digest": ("CREDSTASH_DIGEST", DEFAULT_DIGEST),
}


def _resolve(field: str, explicit: Optional[str]) -> Optional[str]:
    if explicit:
        return explicit
    env_var, default = _SETTINGS[field]
    return os.environ.get(env_var) or default


class StashConfig(BaseModel):
    """Validated credstash configuration."""

    region: str = DEFAULT_REGION
    kms_region: str = DEFAULT_REGION
    table: str = DEFAULT_TABLE
    kms_key_id: str = DEFAULT_KMS_KEY_ID
    profile: Optional[str] = None
    dynamodb_endpoint: Optional[str] = None
    kms_endpoint: Optional[str] = None
    digest: str = DEFAULT_DIGEST

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Validate the HMAC digest is supported."""
        get_digest(v)
        return v

    @field_validator("table", "kms_key_id", "region", "kms_region")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("value cannot be empty")
        return v

    @classmethod
    def from_env(cls, **overrides: Optional[str]) -> "StashConfig":
        """Create a StashConfig from explicit overrides, the environment
        and the defaults, in that order.

        Args:
            **overrides: Any StashConfig field; None or "" means "not given".

        Returns:
            Populated StashConfig instance.

        Raises:
            TypeError: If an override is not a known setting.
        """
        unknown = set(overrides) - set(_SETTINGS)
        if unknown:
            raise TypeError(f"Unknown credstash setting(s): {sorted(unknown)}")
        values = {
            field: _resolve(field, overrides.get(field))
            for field in _SETTINGS
        }
        # KMS lives in the table's region unless told otherwise
        if values["kms_region"] is None:
            values["kms_region"] = values["region"]
        config = cls(**values)
        logger.debug(
            "Resolved credstash config: table=%s region=%s kms_region=%s key=%s",
            config.table, config.region, config.kms_region, config.kms_key_id,
        )
        return config


def resolve_config(**overrides: Optional[str]) -> StashConfig:
    """Shortcut for :meth:`StashConfig.from_env`."""
    return StashConfig.from_env(**overrides)
