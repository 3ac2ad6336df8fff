"""Security utilities: key provisioning and artifact encryption."""

from portability_engine.security.keys import EncryptionKeyProvider, KEY_LENGTH
from portability_engine.security.encryption import encrypt_artifact, decrypt_artifact

__all__ = [
    "EncryptionKeyProvider",
    "KEY_LENGTH",
    "encrypt_artifact",
    "decrypt_artifact",
]
