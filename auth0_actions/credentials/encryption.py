"""Encryption of stored client secrets.

Client secrets of stored M2M configurations are encrypted at rest with
AES-256-GCM.
"""

import base64
import os
from typing import Optional

import structlog
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from auth0_actions.config import settings
from auth0_actions.credentials.exceptions import CredentialEncryptionError

logger = structlog.get_logger()

NONCE_SIZE = 12


def generate_encryption_key() -> str:
    """Generate a new encryption key.

    Returns:
        Base64 encoded 256-bit key
    """
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("utf-8")


class SecretEncryption:
    """Encrypts and decrypts secret strings with AES-256-GCM."""

    def __init__(self, encryption_key: Optional[str] = None):
        """Initialize secret encryption.

        Args:
            encryption_key: Base64 encoded encryption key. Falls back to the
                configured key, then to a temporary key for this process.
        """
        key = encryption_key or settings.encryption_key
        if key:
            try:
                self.key = base64.b64decode(key)
            except ValueError as e:
                raise CredentialEncryptionError(f"Invalid encryption key: {e}")
        else:
            logger.warning("No encryption key configured, generating temporary key")
            self.key = AESGCM.generate_key(bit_length=256)

        if len(self.key) != 32:
            raise CredentialEncryptionError("Encryption key must be 256 bits (32 bytes)")

        self._aesgcm = AESGCM(self.key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string.

        Returns:
            Base64 encoded nonce + ciphertext + tag
        """
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("utf-8")

    def decrypt(self, encrypted: str) -> str:
        """Decrypt a string produced by ``encrypt``."""
        try:
            data = base64.b64decode(encrypted)
            plaintext = self._aesgcm.decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None)
            return plaintext.decode("utf-8")
        except Exception as e:
            logger.error("Decryption failed", error_type=type(e).__name__)
            raise CredentialEncryptionError("Failed to decrypt stored secret")


_secret_encryption: Optional[SecretEncryption] = None


def get_secret_encryption() -> SecretEncryption:
    """Get the process-wide encryption instance."""
    global _secret_encryption
    if _secret_encryption is None:
        _secret_encryption = SecretEncryption()
    return _secret_encryption
