"""
Encryption service for OAuth tokens and OAuth state.
Uses Fernet symmetric encryption.
"""
import json
import secrets
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from inflio.config import settings
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

OAUTH_STATE_TTL_SECONDS = 600


class EncryptionService:
    """Service for encrypting and decrypting sensitive data."""

    def __init__(self, key: Optional[str] = None):
        """Initialize with key from settings."""
        key = key or settings.token_encryption_key
        if not key:
            # Fallback for dev only
            logger.warning("TOKEN_ENCRYPTION_KEY not set, using an ephemeral key")
            self.fernet = Fernet(Fernet.generate_key())
        else:
            self.fernet = Fernet(key.encode())

    def encrypt(self, text: str) -> str:
        """Encrypt a string."""
        return self.fernet.encrypt(text.encode()).decode()

    def decrypt(self, token: Optional[str]) -> str:
        """Decrypt a token; unreadable tokens decrypt to an empty string."""
        if not token:
            return ""
        try:
            return self.fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            logger.warning("Failed to decrypt stored token")
            return ""

    def create_state(self, payload: Dict[str, Any]) -> str:
        """Opaque, tamper-proof OAuth ``state`` carrying ``payload``."""
        data = dict(payload, nonce=secrets.token_urlsafe(8))
        return self.fernet.encrypt(json.dumps(data).encode()).decode()

    def read_state(
        self, state: str, ttl: int = OAUTH_STATE_TTL_SECONDS
    ) -> Optional[Dict[str, Any]]:
        """Payload of a state created by ``create_state``; None when invalid or expired."""
        try:
            return json.loads(self.fernet.decrypt(state.encode(), ttl=ttl))
        except (InvalidToken, ValueError):
            return None


# Singleton instance
encryption_service = EncryptionService()
