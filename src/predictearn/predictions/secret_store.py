"""At-rest encryption for prediction answers.

Values are AES-256-GCM encrypted with a fresh 96-bit nonce per call and stored
as ``<nonce hex>:<ciphertext+tag hex>``. The AES key is the SHA-256 digest of
the configured ``encryption_key`` so any passphrase length yields a valid key.

Answers written before encryption was introduced are plain strings; they are
recognized by ``is_encrypted`` returning False and passed through unchanged.
"""

from __future__ import annotations

import hashlib
import os
import re
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from predictearn.config import get_settings
from predictearn.errors import DecryptionError

NONCE_BYTES = 12
_ENCRYPTED_SHAPE = re.compile(r"^[0-9a-f]{24}:[0-9a-f]{32,}$")


class SecretStore:
    """Encrypts and decrypts short secrets with a single symmetric key."""

    def __init__(self, key: str) -> None:
        self._aead = AESGCM(hashlib.sha256(key.encode("utf-8")).digest())

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return f"{nonce.hex()}:{sealed.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """Reverse ``encrypt``.

        Raises:
            DecryptionError: malformed input, wrong key, or tampered data.
        """
        if not self.is_encrypted(ciphertext):
            raise DecryptionError
        nonce_hex, sealed_hex = ciphertext.split(":")
        try:
            plaintext = self._aead.decrypt(bytes.fromhex(nonce_hex), bytes.fromhex(sealed_hex), None)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError) as e:
            raise DecryptionError from e

    @staticmethod
    def is_encrypted(value: str) -> bool:
        """Heuristic: does ``value`` have the ``nonce:ciphertext`` shape?"""
        return bool(_ENCRYPTED_SHAPE.match(value))

    def reveal(self, value: str) -> str:
        """Plaintext of a stored answer, tolerating legacy unencrypted values."""
        if self.is_encrypted(value):
            return self.decrypt(value)
        return value


@lru_cache
def get_secret_store() -> SecretStore:
    """Process-wide store keyed from settings (FastAPI dependency)."""
    return SecretStore(get_settings().encryption_key)
