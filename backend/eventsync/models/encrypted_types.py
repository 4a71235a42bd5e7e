"""Column type that keeps tenant credentials encrypted at rest."""

import structlog
from sqlalchemy import String, TypeDecorator

from eventsync.services.encryption_service import EncryptionService, encryption_service

logger = structlog.get_logger(__name__)


class EncryptedString(TypeDecorator):
    """
    String column stored as an ``enc:``-marked Fernet token.

    Values that already carry the marker are written as-is, so copying a row
    never double-encrypts. Rows written before encryption was introduced
    (no marker) are read back unchanged.
    """

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or EncryptionService.is_encrypted(value):
            return value
        return encryption_service.encrypt(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        plaintext = encryption_service.decrypt(value)
        if not plaintext and EncryptionService.is_encrypted(value):
            # Wrong ENCRYPTION_SECRET or a damaged token; callers see "".
            logger.warning("encrypted_value_unreadable", using_fallback_key=encryption_service.using_fallback_key)
        return plaintext
