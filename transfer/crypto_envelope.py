"""Encrypt-before-upload and decrypt-after-verify around a Cipher."""

import secrets
from dataclasses import dataclass
from typing import Optional

from common.constants import AES_KEY_BYTES
from common.exceptions import EncryptionError
from common.logging_config import get_logger
from transfer.cipher import AesGcmCipher, Cipher, CipherFailure

logger = get_logger(__name__)


@dataclass(frozen=True)
class SealedPayload:
    ciphertext: bytes
    iv: bytes

    @property
    def iv_hex(self) -> str:
        return self.iv.hex()


def generate_key() -> str:
    """Random 256-bit key as 64 hex characters."""
    return secrets.token_hex(AES_KEY_BYTES)


class CryptoEnvelope:
    """
    Coordinates the cipher with the transfer pipeline.

    seal() runs before layout and digest computation, so the root digest
    covers ciphertext. open() is only handed bytes that already passed
    root digest verification.
    """

    def __init__(self, cipher: Optional[Cipher] = None):
        self.cipher = cipher or AesGcmCipher()

    def seal(self, plaintext: bytes, key: Optional[str]) -> SealedPayload:
        """
        Raises:
            EncryptionError: If the key is missing or the cipher fails
        """
        if not key:
            raise EncryptionError("An encryption key is required", stage="encrypt")
        try:
            ciphertext, iv = self.cipher.encrypt(plaintext, key)
        except (CipherFailure, ValueError) as e:
            raise EncryptionError(f"Encryption failed: {e}", stage="encrypt") from e
        logger.debug(f"Sealed {len(plaintext)} byte(s) into {len(ciphertext)} byte(s)")
        return SealedPayload(ciphertext=ciphertext, iv=iv)

    def open(self, ciphertext: bytes, key: Optional[str], iv_hex: Optional[str]) -> bytes:
        """
        Decrypt verified ciphertext.

        Raises:
            EncryptionError: If key or IV is missing or decryption fails
        """
        if not key:
            raise EncryptionError("This file is encrypted. Please provide the decryption key.", stage="decrypt")
        if not iv_hex:
            raise EncryptionError("Pointer record has no IV for an encrypted file", stage="decrypt")
        try:
            iv = bytes.fromhex(iv_hex)
        except ValueError as e:
            raise EncryptionError("Pointer record IV is not valid hex", stage="decrypt") from e
        try:
            return self.cipher.decrypt(ciphertext, key, iv)
        except (CipherFailure, ValueError) as e:
            raise EncryptionError(f"Decryption failed: {e}", stage="decrypt") from e
