"""
Encryption of environment variable values.

Values are encrypted with AES-256-CBC and PKCS7 padding. A random 16 byte IV
is generated per value and prepended to the ciphertext before base64 encoding.

Tokens written by older deployments used a fixed IV derived from
``sha256("your-iv")`` and a doubly base64 encoded ciphertext; ``decrypt_value``
still reads them.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger(__name__)

KEY_SIZE = 32
IV_SIZE = 16
LEGACY_IV = hashlib.sha256(b"your-iv").hexdigest()[:IV_SIZE].encode("ascii")


def derive_key(secret: str) -> bytes:
    """Turn a configured secret into a 32 byte AES key.

    The secret is utf-8 encoded, then zero padded or truncated, which is how
    OpenSSL treats short and long passphrases given as raw keys.
    """
    raw = secret.encode("utf-8")
    return raw[:KEY_SIZE].ljust(KEY_SIZE, b"\0")


def _decrypt_raw(ciphertext: bytes, key: bytes, iv: bytes) -> Optional[str]:
    if not ciphertext or len(ciphertext) % IV_SIZE:
        return None
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return None


def encrypt_value(value: str, secret: str, iv: Optional[bytes] = None) -> str:
    """
    Encrypt a value for storage.

    Args:
        value: Plain text value
        secret: Encryption secret (``APP_ENCRYPT_KEY``)
        iv: Explicit IV, only meant for tests; a random one is used otherwise

    Returns:
        Base64 encoded IV + ciphertext
    """
    iv = iv if iv is not None else os.urandom(IV_SIZE)
    if len(iv) != IV_SIZE:
        raise ValueError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(value.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(derive_key(secret)), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(iv + ciphertext).decode("ascii")


def decrypt_value(token: str, secret: str) -> Optional[str]:
    """
    Decrypt a value produced by ``encrypt_value`` or by the legacy fixed-IV scheme.

    Args:
        token: Base64 encoded token
        secret: Encryption secret (``APP_ENCRYPT_KEY``)

    Returns:
        The plain text, or None when the token cannot be decrypted with this secret
    """
    if not token:
        return None

    try:
        data = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError):
        return None

    key = derive_key(secret)

    if len(data) > IV_SIZE:
        plain = _decrypt_raw(data[IV_SIZE:], key, data[:IV_SIZE])
        if plain is not None:
            return plain

    # Legacy: fixed IV, ciphertext base64 encoded a second time
    try:
        legacy_ciphertext = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None
    plain = _decrypt_raw(legacy_ciphertext, key, LEGACY_IV)
    if plain is not None:
        logger.debug("Decrypted value stored in legacy format")
    return plain
