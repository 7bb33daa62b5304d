"""Unit tests for the cipher and crypto envelope."""

import pytest

from common.exceptions import EncryptionError
from transfer.cipher import AesGcmCipher, CipherFailure, derive_key
from transfer.crypto_envelope import CryptoEnvelope, generate_key

FAST_ITERATIONS = 1000


@pytest.fixture
def envelope():
    return CryptoEnvelope(AesGcmCipher(iterations=FAST_ITERATIONS))


class TestCipher:
    """Test AES-GCM key handling."""

    def test_hex_key_used_as_raw_key(self):
        key = "ab" * 32

        assert derive_key(key, b"\x00" * 12) == bytes.fromhex(key)

    def test_passphrase_is_stretched_with_salt(self):
        first = derive_key("correct horse", b"\x01" * 12, FAST_ITERATIONS)
        second = derive_key("correct horse", b"\x02" * 12, FAST_ITERATIONS)

        assert len(first) == 32
        assert first != second

    def test_wrong_key_raises_cipher_failure(self):
        cipher = AesGcmCipher(iterations=FAST_ITERATIONS)
        ciphertext, iv = cipher.encrypt(b"secret", generate_key())

        with pytest.raises(CipherFailure):
            cipher.decrypt(ciphertext, generate_key(), iv)


class TestCryptoEnvelope:
    """Test seal/open around the cipher."""

    @pytest.mark.parametrize("size", [0, 1, 255, 256, 256 * 1024 + 1])
    def test_round_trip(self, envelope, size):
        plaintext = bytes(i % 251 for i in range(size))
        key = generate_key()

        sealed = envelope.seal(plaintext, key)

        assert sealed.ciphertext != plaintext
        assert envelope.open(sealed.ciphertext, key, sealed.iv_hex) == plaintext

    def test_passphrase_round_trip(self, envelope):
        sealed = envelope.seal(b"notes", "correct horse battery staple")

        assert envelope.open(sealed.ciphertext, "correct horse battery staple", sealed.iv_hex) == b"notes"

    def test_iv_is_fresh_per_seal(self, envelope):
        key = generate_key()

        assert envelope.seal(b"same", key).iv != envelope.seal(b"same", key).iv

    def test_generated_key_is_64_hex_chars(self):
        key = generate_key()

        assert len(key) == 64
        int(key, 16)

    def test_seal_without_key(self, envelope):
        with pytest.raises(EncryptionError):
            envelope.seal(b"data", None)

    def test_open_without_key(self, envelope):
        sealed = envelope.seal(b"data", generate_key())

        with pytest.raises(EncryptionError, match="provide the decryption key"):
            envelope.open(sealed.ciphertext, None, sealed.iv_hex)

    def test_open_without_iv(self, envelope):
        key = generate_key()
        sealed = envelope.seal(b"data", key)

        with pytest.raises(EncryptionError):
            envelope.open(sealed.ciphertext, key, None)

    def test_open_with_invalid_iv(self, envelope):
        key = generate_key()
        sealed = envelope.seal(b"data", key)

        with pytest.raises(EncryptionError):
            envelope.open(sealed.ciphertext, key, "zz")

    def test_open_with_wrong_key(self, envelope):
        sealed = envelope.seal(b"data", generate_key())

        with pytest.raises(EncryptionError) as exc_info:
            envelope.open(sealed.ciphertext, generate_key(), sealed.iv_hex)

        assert exc_info.value.stage == "decrypt"
