"""Authenticated encryption for export artifacts."""

import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from portability_engine.core.exceptions import SecurityError
from portability_engine.models.export import EncryptionAlgorithm

logger = logging.getLogger(__name__)

NONCE_SIZE = 12

_CIPHERS = {
    EncryptionAlgorithm.AES_256_GCM: AESGCM,
    EncryptionAlgorithm.CHACHA20_POLY1305: ChaCha20Poly1305,
}


def _cipher(algorithm: EncryptionAlgorithm, key: bytes):
    cipher_cls = _CIPHERS.get(EncryptionAlgorithm(algorithm))
    if cipher_cls is None:
        raise SecurityError(f"Unsupported encryption algorithm: {algorithm}")
    return cipher_cls(key)


def encrypt_artifact(
    data: bytes,
    key: bytes,
    algorithm: EncryptionAlgorithm,
    associated_data: bytes = b""
) -> bytes:
    """Encrypt data, returning ``nonce || ciphertext``.

    Args:
        data: Plaintext artifact bytes
        key: 32-byte key
        algorithm: AES-256-GCM or ChaCha20-Poly1305
        associated_data: Authenticated but unencrypted context, e.g. the export id

    Returns:
        Nonce followed by ciphertext and tag
    """
    try:
        cipher = _cipher(algorithm, key)
        nonce = os.urandom(NONCE_SIZE)
        encrypted = nonce + cipher.encrypt(nonce, data, associated_data or None)
    except SecurityError:
        raise
    except Exception as e:
        logger.error(f"Encryption failed: {e}")
        raise SecurityError(f"Failed to encrypt artifact: {e}") from e

    logger.debug(f"Encrypted {len(data)} bytes with {EncryptionAlgorithm(algorithm).value}")
    return encrypted


def decrypt_artifact(
    encrypted: bytes,
    key: bytes,
    algorithm: EncryptionAlgorithm,
    associated_data: bytes = b""
) -> bytes:
    """Reverse ``encrypt_artifact``; raises SecurityError on tampering or a wrong key."""
    if len(encrypted) <= NONCE_SIZE:
        raise SecurityError("Encrypted artifact is truncated")
    nonce, ciphertext = encrypted[:NONCE_SIZE], encrypted[NONCE_SIZE:]
    try:
        return _cipher(algorithm, key).decrypt(nonce, ciphertext, associated_data or None)
    except InvalidTag as e:
        raise SecurityError("Artifact failed authentication") from e
