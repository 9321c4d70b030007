# safestore_backend/app/crypto.py
"""At-rest encryption for stored objects.

Stored payloads are laid out as ``IV || ciphertext`` where the IV is 16
random bytes and the ciphertext is AES-256-CBC over the PKCS7-padded
plaintext.
"""
from __future__ import annotations

import binascii
import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .exceptions import DecryptionError

logger = logging.getLogger("safestore.crypto")
logger.setLevel(logging.INFO)

KEY_SIZE = 32  # AES-256
IV_SIZE = 16  # one AES block
_BLOCK_BITS = algorithms.AES.block_size


def generate_key() -> bytes:
    """Return a fresh random AES-256 key."""
    return os.urandom(KEY_SIZE)


def load_key(hex_key: str) -> bytes:
    """
    Parse a hex-encoded key from configuration.
    Raises ValueError for anything that is not exactly 32 bytes of hex.
    """
    try:
        key = binascii.unhexlify(hex_key.strip())
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"encryption key is not valid hex: {e}") from None
    if len(key) != KEY_SIZE:
        raise ValueError(f"encryption key must be {KEY_SIZE} bytes, got {len(key)}")
    return key


class EncryptionEngine:
    """Symmetric cipher bound to one key for the lifetime of the process."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key

    def __repr__(self) -> str:
        return "EncryptionEngine(key=<hidden>)"

    def encrypt(self, plaintext: bytes) -> bytes:
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        return iv + encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, blob: bytes) -> bytes:
        """
        Reverse ``encrypt``. A wrong key almost always surfaces as a
        padding failure; both that and a malformed blob raise DecryptionError.
        """
        block = _BLOCK_BITS // 8
        if len(blob) < IV_SIZE + block or (len(blob) - IV_SIZE) % block:
            raise DecryptionError("Encrypted payload is truncated or malformed")

        iv, ciphertext = blob[:IV_SIZE], blob[IV_SIZE:]
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError:
            logger.warning("Decryption failed: invalid padding (wrong key or corrupted payload)")
            raise DecryptionError("Unable to decrypt file") from None


def engine_from_config(hex_key: str | None) -> EncryptionEngine:
    """
    Build the process-wide engine. Without a configured key a random one is
    generated, which means nothing written by this process survives a restart.
    """
    if hex_key:
        try:
            key = load_key(hex_key)
        except ValueError as e:
            # Hard fail, like a missing secret would.
            raise RuntimeError(f"FATAL: SAFESTORE_ENCRYPTION_KEY is invalid: {e}") from None
        logger.info("Using configured encryption key")
    else:
        logger.warning(
            "SAFESTORE_ENCRYPTION_KEY is not set; generated an ephemeral key. "
            "Stored files cannot be decrypted after a restart."
        )
        key = generate_key()
    return EncryptionEngine(key)
