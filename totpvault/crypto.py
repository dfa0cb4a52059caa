"""
TOTPVault - Cryptography Module

Every cryptographic operation of the credential store lives here:
- Password + salt -> key (PBKDF2-HMAC-SHA256)
- Salt phrase -> fixed-length salt (SHA-256)
- AES-256-GCM encryption of opaque byte payloads

This module knows nothing about credential records. It takes bytes in and
gives bytes out.

On-disk blob layout:
    nonce (12 bytes) || ciphertext || GCM tag (16 bytes)
"""

import os
import hashlib

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import ConfigurationError, DecryptionFailed


# =============================================================================
# Configuration
# =============================================================================

KEY_SIZE = 32            # 256-bit key for AES-256-GCM
NONCE_SIZE = 12          # 96-bit nonce for AES-GCM
TAG_SIZE = 16            # 128-bit authentication tag

PBKDF2_ITERATIONS = 4096

DECRYPTION_FAILED_MESSAGE = "authentication failed: wrong password, wrong salt, or corrupted file"


# =============================================================================
# Key Derivation
# =============================================================================

def derive_key(password: bytes, salt: bytes, key_length: int = KEY_SIZE) -> bytes:
    """
    Derive a symmetric key from a password using PBKDF2-HMAC-SHA256.

    Same inputs always give the same key. The iteration count is fixed
    (4096) so existing databases keep opening.

    Args:
        password: User's password as bytes
        salt: Database salt (see salt_from_string)
        key_length: Output length, 32 for AES-256-GCM

    Returns:
        key_length bytes of key material
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=key_length,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password)


def salt_from_string(text: str) -> bytes:
    """
    Turn a salt phrase into a 32-byte salt (SHA-256 of its UTF-8 bytes).

    One salt covers the whole database. It is not secret, it only keeps two
    databases with the same password from sharing a key.
    """
    return hashlib.sha256(text.encode('utf-8')).digest()


# =============================================================================
# Encryption (AES-256-GCM)
# =============================================================================

def _cipher(key: bytes) -> AESGCM:
    """Build the AEAD cipher, rejecting keys of the wrong size."""
    if len(key) != KEY_SIZE:
        raise ConfigurationError(f"encryption key must be {KEY_SIZE} bytes, got {len(key)}")
    return AESGCM(key)


def encrypt(plaintext: bytes, key: bytes) -> bytes:
    """
    Encrypt a payload with AES-256-GCM.

    A fresh random nonce is drawn on every call and prepended to the output,
    so the blob is self-contained. No associated data is used.

    Args:
        plaintext: Bytes to protect
        key: 32-byte key from derive_key()

    Returns:
        nonce || ciphertext || tag

    Raises:
        ConfigurationError: If the key has the wrong length
    """
    aesgcm = _cipher(key)

    # Never reuse a nonce with the same key
    nonce = os.urandom(NONCE_SIZE)

    return nonce + aesgcm.encrypt(nonce, plaintext, None)


def decrypt(blob: bytes, key: bytes) -> bytes:
    """
    Verify and decrypt a blob produced by encrypt().

    A wrong key, a wrong salt, a truncated file and a flipped byte all end in
    the same DecryptionFailed with the same message.

    Args:
        blob: nonce || ciphertext || tag
        key: 32-byte key from derive_key()

    Returns:
        Plaintext bytes

    Raises:
        DecryptionFailed: If the blob is too short or the tag does not verify
        ConfigurationError: If the key has the wrong length
    """
    aesgcm = _cipher(key)

    if len(blob) < NONCE_SIZE:
        raise DecryptionFailed(DECRYPTION_FAILED_MESSAGE)

    nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]

    try:
        return aesgcm.decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise DecryptionFailed(DECRYPTION_FAILED_MESSAGE) from None
