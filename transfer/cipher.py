"""Symmetric cipher capability (AES-256-GCM by default)."""

import os
import re
from typing import Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from common.constants import AES_KEY_BYTES, GCM_NONCE_BYTES, PBKDF2_ITERATIONS

_RAW_KEY_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


class CipherFailure(Exception):
    """Raised by Cipher implementations when encryption or decryption fails."""
    pass


class Cipher(Protocol):
    def encrypt(self, data: bytes, key: str) -> tuple[bytes, bytes]:
        """Return (ciphertext, iv)."""
        ...

    def decrypt(self, ciphertext: bytes, key: str, iv: bytes) -> bytes:
        ...


def derive_key(key_material: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """
    Turn key material into a 32-byte AES key.

    64 hex characters are used as the raw key. Anything else is treated as a
    passphrase and stretched with PBKDF2-HMAC-SHA256, salted with the IV.
    """
    if _RAW_KEY_PATTERN.match(key_material):
        return bytes.fromhex(key_material)
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=AES_KEY_BYTES,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(key_material.encode("utf-8"))


class AesGcmCipher:
    """AES-256-GCM with a random 12-byte nonce used as the IV."""

    def __init__(self, iterations: int = PBKDF2_ITERATIONS):
        self.iterations = iterations

    def encrypt(self, data: bytes, key: str) -> tuple[bytes, bytes]:
        if not key:
            raise CipherFailure("Missing key")
        iv = os.urandom(GCM_NONCE_BYTES)
        aesgcm = AESGCM(derive_key(key, iv, self.iterations))
        return aesgcm.encrypt(iv, data, None), iv

    def decrypt(self, ciphertext: bytes, key: str, iv: bytes) -> bytes:
        if not key:
            raise CipherFailure("Missing key")
        if len(iv) != GCM_NONCE_BYTES:
            raise CipherFailure(f"IV must be {GCM_NONCE_BYTES} bytes, got {len(iv)}")
        aesgcm = AESGCM(derive_key(key, iv, self.iterations))
        try:
            return aesgcm.decrypt(iv, ciphertext, None)
        except InvalidTag as e:
            raise CipherFailure("Authentication failed (wrong key or corrupted data)") from e
