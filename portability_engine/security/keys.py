"""Export encryption key provisioning."""

import hashlib
import logging
import os
from typing import Mapping, Optional

from portability_engine.core.exceptions import SecurityError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32  # bytes; AES-256 and ChaCha20 both take 256-bit keys


class EncryptionKeyProvider:
    """Supplies the key used to encrypt export artifacts.

    The key is provisioned explicitly, either as raw bytes or as 64 hex
    characters in an environment variable. When no key is provisioned,
    ``require_key`` fails; there is no generated fallback key.
    """

    def __init__(
        self,
        key: Optional[bytes] = None,
        env_var: str = "PORTABILITY_KEY",
        environ: Optional[Mapping[str, str]] = None
    ):
        self.env_var = env_var
        if key is not None:
            self._key = self._check_length(key)
        else:
            self._key = self._read_env(environ if environ is not None else os.environ)

    def _check_length(self, key: bytes) -> bytes:
        if len(key) != KEY_LENGTH:
            raise SecurityError(
                f"Encryption key must be {KEY_LENGTH} bytes, got {len(key)}"
            )
        return key

    def _read_env(self, environ: Mapping[str, str]) -> Optional[bytes]:
        raw = environ.get(self.env_var)
        if not raw:
            return None
        try:
            key = bytes.fromhex(raw.strip())
        except ValueError as e:
            raise SecurityError(f"{self.env_var} is not valid hex: {e}") from e
        return self._check_length(key)

    @property
    def has_key(self) -> bool:
        return self._key is not None

    def require_key(self) -> bytes:
        """Return the key, failing hard if none was provisioned."""
        if self._key is None:
            raise SecurityError(
                f"No export encryption key provisioned; set {self.env_var} "
                f"to {KEY_LENGTH * 2} hex characters",
                code="KEY_NOT_PROVISIONED"
            )
        return self._key

    @property
    def key_id(self) -> Optional[str]:
        """Short fingerprint identifying the key without revealing it."""
        if self._key is None:
            return None
        return hashlib.sha256(self._key).hexdigest()[:16]
