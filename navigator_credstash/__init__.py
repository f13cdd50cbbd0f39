"""Navigator Credstash — versioned secrets with KMS envelope encryption.

Security Note (Threat Model):
    Secrets are encrypted client-side; only the KMS-wrapped data key and
    the ciphertext are stored. Decrypted values exist in process memory
    while in use, which is an accepted limitation.
"""

from .store import SecretStore
from .config import StashConfig, resolve_config
from .models import SecretRecord, SecretVersion
from .crypto import EncryptedSecret, encrypt_secret, decrypt_secret
from .exceptions import (
    CredstashError,
    NotFoundError,
    IntegrityError,
    DecodingError,
    KeyServiceError,
    KeyGenerationError,
    KeyUnwrapError,
    DuplicateVersionError,
    UnsupportedDigestError,
    TableNotFoundError,
)
from .version import __version__

__all__ = [
    "SecretStore",
    "StashConfig",
    "resolve_config",
    "SecretRecord",
    "SecretVersion",
    "EncryptedSecret",
    "encrypt_secret",
    "decrypt_secret",
    "CredstashError",
    "NotFoundError",
    "IntegrityError",
    "DecodingError",
    "KeyServiceError",
    "KeyGenerationError",
    "KeyUnwrapError",
    "DuplicateVersionError",
    "UnsupportedDigestError",
    "TableNotFoundError",
    "__version__",
]
