"""
Encryption service for securing tenant API keys at rest.
Uses Fernet (symmetric, authenticated encryption) from the cryptography library.
"""

import base64
import hashlib
import secrets

import structlog
from cryptography.fernet import Fernet, InvalidToken

from eventsync.core.config import settings

logger = structlog.get_logger(__name__)

# Prefix distinguishing encrypted values from legacy plaintext rows.
ENCRYPTED_MARKER = "enc:"

# Used only when no installation secret is configured. Anyone holding the
# source can decrypt keys written under it.
FALLBACK_SECRET = "eventsync-fallback-encryption-key-do-not-use-in-production"


class EncryptionError(Exception):
    """Raised when a value cannot be encrypted."""


class EncryptionService:
    """Service for encrypting and decrypting tenant credentials."""

    def __init__(self, secret: str | None = None):
        """
        Initialize encryption service.

        Args:
            secret: Installation-wide secret; defaults to settings.ENCRYPTION_SECRET
        """
        source = secret if secret is not None else settings.ENCRYPTION_SECRET
        self.using_fallback_key = not source
        if self.using_fallback_key:
            logger.warning(
                "encryption_fallback_key_in_use",
                hint="set ENCRYPTION_SECRET to protect stored API keys",
            )
            source = FALLBACK_SECRET

        self._fernet = Fernet(self.derive_key(source))

    @staticmethod
    def derive_key(secret: str) -> bytes:
        """Derive a Fernet key from an arbitrary secret via SHA-256."""
        digest = hashlib.sha256(secret.encode()).digest()
        return base64.urlsafe_b64encode(digest)

    @staticmethod
    def is_encrypted(value: str | None) -> bool:
        """Return True when the value carries the encryption marker."""
        return bool(value) and value.startswith(ENCRYPTED_MARKER)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext string.

        Args:
            plaintext: String to encrypt

        Returns:
            Marker-prefixed Fernet token, or "" for empty input

        Raises:
            EncryptionError: If the cipher fails. The value is never stored
                unencrypted as a fallback.
        """
        if not plaintext:
            return ""

        try:
            token = self._fernet.encrypt(plaintext.encode())
        except Exception as e:
            logger.error("encryption_failed", error=str(e))
            raise EncryptionError(f"Failed to encrypt value: {e}") from e

        return ENCRYPTED_MARKER + token.decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt ciphertext string.

        Values without the marker are legacy plaintext and are returned as-is.
        Corrupted, truncated or foreign-keyed tokens decrypt to "".

        Args:
            ciphertext: Stored value

        Returns:
            Decrypted plaintext string
        """
        if not ciphertext:
            return ""

        if not self.is_encrypted(ciphertext):
            return ciphertext

        token = ciphertext[len(ENCRYPTED_MARKER):]
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except (InvalidToken, ValueError, UnicodeDecodeError) as e:
            logger.error("decryption_failed", error=type(e).__name__)
            return ""

    @staticmethod
    def generate_secret() -> str:
        """
        Generate a random installation secret suitable for ENCRYPTION_SECRET.

        Returns:
            URL-safe random string
        """
        return secrets.token_urlsafe(48)


# Global encryption service instance
encryption_service = EncryptionService()
