"""
Credstash Crypto Core — Envelope encryption of secret values.

Each secret version is sealed with its own 64-byte data key from KMS:
- Cipher key: data_key[0:32] → AES-256-CTR over the UTF-8 secret
- HMAC key: data_key[32:64] → HMAC(digest) over the ciphertext (Encrypt-then-MAC)

Security Note:
    Never log plaintext, data keys or ciphertext values.
    The CTR nonce is fixed (all-zero, counter starting at 1), which is only
    sound because every data key encrypts exactly one plaintext. Never
    call ``encrypt_secret`` twice with the same data key.
"""
import logging
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .exceptions import DecodingError, IntegrityError, UnsupportedDigestError

logger = logging.getLogger("navigator.credstash")

DATA_KEY_SIZE = 64  # cipher key + hmac key
KEY_LENGTH = 32  # AES-256
DEFAULT_DIGEST = "sha256"

# 128-bit big-endian counter block starting at 1, as written by
# the aes-js and PyCrypto based credstash clients.
_INITIAL_COUNTER = (1).to_bytes(16, "big")

_DIGESTS = {
    "sha": hashes.SHA1,
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
    "md5": hashes.MD5,
}


@dataclass(frozen=True)
class EncryptedSecret:
    """Output of :func:`encrypt_secret`."""

    ciphertext: bytes
    hmac: str
    digest: str


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------

def split_data_key(data_key: bytes) -> tuple[bytes, bytes]:
    """Split KMS key material into (cipher_key, hmac_key).

    Args:
        data_key: Plaintext data key returned by the key service.

    Returns:
        Tuple of the 32-byte AES key and the 32-byte HMAC key.

    Raises:
        ValueError: If data_key is not exactly 64 bytes.
    """
    if len(data_key) != DATA_KEY_SIZE:
        raise ValueError(
            f"data key must be exactly {DATA_KEY_SIZE} bytes, "
            f"got {len(data_key)}"
        )
    return data_key[:KEY_LENGTH], data_key[KEY_LENGTH:]


def get_digest(name: str) -> hashes.HashAlgorithm:
    """Return a hash instance for a digest name (case-insensitive).

    Raises:
        UnsupportedDigestError: If the digest is unknown.
    """
    try:
        return _DIGESTS[name.lower()]()
    except (KeyError, AttributeError):
        raise UnsupportedDigestError(
            f"Unsupported HMAC digest: {name!r}"
        ) from None


def _ctr(key: bytes) -> Cipher:
    return Cipher(algorithms.AES(key), modes.CTR(_INITIAL_COUNTER))


def _hmac(hmac_key: bytes, digest: str, ciphertext: bytes) -> hmac.HMAC:
    h = hmac.HMAC(hmac_key, get_digest(digest))
    h.update(ciphertext)
    return h


# ---------------------------------------------------------------------------
# Encrypt / decrypt
# ---------------------------------------------------------------------------

def encrypt_secret(
    plaintext: str,
    data_key: bytes,
    digest: str = DEFAULT_DIGEST,
) -> EncryptedSecret:
    """Encrypt a secret value and authenticate the ciphertext.

    Args:
        plaintext: Secret value.
        data_key: Fresh 64-byte key material, used for this call only.
        digest: HMAC digest name.

    Returns:
        EncryptedSecret with ciphertext, hex HMAC and the digest name.
    """
    key, hmac_key = split_data_key(data_key)
    encryptor = _ctr(key).encryptor()
    ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
    signature = _hmac(hmac_key, digest, ciphertext).finalize().hex()
    return EncryptedSecret(ciphertext=ciphertext, hmac=signature, digest=digest)


def verify_hmac(
    ciphertext: bytes,
    signature: str,
    digest: str,
    hmac_key: bytes,
) -> None:
    """Check a stored hex HMAC against the ciphertext in constant time.

    Raises:
        IntegrityError: If the HMAC is malformed or does not match.
    """
    try:
        expected = bytes.fromhex(signature)
    except (TypeError, ValueError):
        raise IntegrityError("HMAC verification failed: malformed hmac") from None
    try:
        _hmac(hmac_key, digest, ciphertext).verify(expected)
    except InvalidSignature:
        raise IntegrityError("HMAC verification failed") from None


def decrypt_secret(
    ciphertext: bytes,
    signature: str,
    digest: str,
    data_key: bytes,
) -> str:
    """Verify and decrypt a sealed secret.

    The HMAC is checked before any decryption happens.

    Args:
        ciphertext: AES-CTR output stored in the record.
        signature: Hex HMAC stored in the record.
        digest: Digest name stored in the record.
        data_key: Unwrapped 64-byte key material.

    Returns:
        The plaintext secret.

    Raises:
        IntegrityError: On HMAC mismatch.
        DecodingError: If the decrypted bytes are not UTF-8.
    """
    key, hmac_key = split_data_key(data_key)
    verify_hmac(ciphertext, signature, digest, hmac_key)
    decryptor = _ctr(key).decryptor()
    raw = decryptor.update(ciphertext) + decryptor.finalize()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as err:
        raise DecodingError(
            "Decrypted secret is not valid UTF-8"
        ) from err
