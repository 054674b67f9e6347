import hashlib
import logging
import os
from functools import lru_cache
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from config import get_settings


logger = logging.getLogger(__name__)

NONCE_BYTES = 12
TAG_BYTES = 16
MASK = "***********"


class EncryptionError(Exception):
    pass


@lru_cache(maxsize=4)
def derive_key(secret: str) -> bytes:
    """Turn the configured secret into a 32 byte AES key.

    A 64 character hex string is used as-is; anything else goes through scrypt.
    """
    if len(secret) == 64:
        try:
            return bytes.fromhex(secret)
        except ValueError:
            pass
    return hashlib.scrypt(
        secret.encode("utf-8"), salt=b"finance-tracker", n=2**14, r=8, p=1, dklen=32
    )


def _cipher(secret: Optional[str] = None) -> AESGCM:
    settings = get_settings()
    return AESGCM(derive_key(secret or settings.encryption_key))


def encrypt(plaintext: str, *, secret: Optional[str] = None) -> str:
    if not plaintext:
        raise EncryptionError("Text to encrypt cannot be empty")
    nonce = os.urandom(NONCE_BYTES)
    sealed = _cipher(secret).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    return f"{nonce.hex()}:{ciphertext.hex()}:{tag.hex()}"


def decrypt(payload: str, *, secret: Optional[str] = None) -> str:
    if not payload:
        raise EncryptionError("Encrypted data cannot be empty")
    parts = payload.split(":")
    if len(parts) != 3:
        raise EncryptionError("Invalid encrypted data format")
    try:
        nonce, ciphertext, tag = (bytes.fromhex(part) for part in parts)
    except ValueError as exc:
        raise EncryptionError("Invalid encrypted data format") from exc
    if len(nonce) != NONCE_BYTES or len(tag) != TAG_BYTES:
        raise EncryptionError("Invalid encrypted data format")
    try:
        plain = _cipher(secret).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as exc:
        raise EncryptionError("Failed to decrypt data") from exc
    return plain.decode("utf-8")


def mask_token(token: Optional[str]) -> str:
    if not token or len(token) < 13:
        return MASK
    return f"{token[:8]}...{token[-4:]}"


def warn_if_default_key() -> None:
    if not get_settings().encryption_key_from_env:
        logger.warning(
            "encryption: using built-in default key, set FINANCE_ENCRYPTION_KEY"
        )
