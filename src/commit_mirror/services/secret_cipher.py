"""AES-256-ECB decryption of stored parameter values.

Stored values are base64 ciphertexts produced with AES-256 in ECB mode and
PKCS#7 padding.  ECB decrypts every 16-byte block independently; existing
ciphertexts depend on that, so the mode must stay ECB.

The key is fetched once from the secret manager and kept in memory for the
life of the process.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from commit_mirror.domain.exceptions import (
    DecryptionError,
    InvalidKeyLengthError,
    SecretNotFoundError,
)
from commit_mirror.domain.ports.secret_store import SecretManager

logger = logging.getLogger(__name__)

BLOCK_SIZE = 16
KEY_SIZE = 32


def normalize_key(material: str) -> bytes:
    """Turn stored key material into exactly 32 raw bytes.

    A 32-character value is used as-is (UTF-8).  Anything else is tried as
    base64.  Raises :class:`InvalidKeyLengthError` when neither yields 32 bytes.
    """
    raw = material.encode("utf-8")
    if len(raw) == KEY_SIZE:
        return raw
    try:
        decoded = base64.b64decode(material.strip(), validate=True)
    except (binascii.Error, ValueError):
        decoded = b""
    if len(decoded) == KEY_SIZE:
        return decoded
    raise InvalidKeyLengthError(
        f"AES key must be {KEY_SIZE} bytes, got {len(raw)} "
        f"(or {len(decoded)} after base64 decoding)."
    )


def decrypt_with_key(key: bytes, ciphertext_b64: str) -> str:
    """Decrypt a base64 AES-256-ECB ciphertext and strip PKCS#7 padding."""
    if len(key) != KEY_SIZE:
        raise InvalidKeyLengthError(f"AES key must be {KEY_SIZE} bytes, got {len(key)}.")

    try:
        encrypted = base64.b64decode(ciphertext_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"Ciphertext is not valid base64: {exc}") from exc

    if not encrypted or len(encrypted) % BLOCK_SIZE:
        raise DecryptionError(
            f"Ciphertext length {len(encrypted)} is not a positive multiple of {BLOCK_SIZE}."
        )

    decryptor = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
    decrypted = bytearray()
    for offset in range(0, len(encrypted), BLOCK_SIZE):
        decrypted += decryptor.update(encrypted[offset : offset + BLOCK_SIZE])
    decrypted += decryptor.finalize()

    pad_length = decrypted[-1]
    if pad_length < 1 or pad_length > BLOCK_SIZE:
        raise DecryptionError(f"Invalid PKCS#7 padding length {pad_length}.")
    plaintext = bytes(decrypted[:-pad_length])

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionError("Decrypted value is not valid UTF-8 (wrong key?).") from exc


class SecretCipher:
    """Decrypts parameter values with a lazily loaded, memoised AES key.

    Parameters
    ----------
    secret_manager:
        Where the key material lives.
    key_name:
        Secret name / path of the key.
    """

    def __init__(self, secret_manager: SecretManager, key_name: str) -> None:
        self._secrets = secret_manager
        self._key_name = key_name
        self._key: bytes | None = None
        self._lock = asyncio.Lock()

    async def decrypt(self, ciphertext_b64: str) -> str:
        """Decrypt one stored value."""
        key = await self._get_key()
        return decrypt_with_key(key, ciphertext_b64)

    async def _get_key(self) -> bytes:
        if self._key is not None:
            return self._key
        async with self._lock:
            if self._key is None:
                material = await self._secrets.get_secret_value(self._key_name)
                if not material:
                    raise SecretNotFoundError(
                        f"AES key secret '{self._key_name}' is missing or empty."
                    )
                self._key = normalize_key(material)
                logger.debug("AES key '%s' loaded", self._key_name)
        return self._key
