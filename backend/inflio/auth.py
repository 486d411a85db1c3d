"""
Clerk session tokens.

With ``CLERK_ISSUER`` set, bearer tokens are verified (RS256) against the
issuer's JWKS and must carry that issuer. Without it, local development
mode, claims are read unverified.
"""

from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from inflio.config import settings
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


class ClerkUser:
    """The authenticated caller; every row is scoped by ``user_id``."""

    def __init__(self, user_id: str, email: Optional[str] = None):
        self.user_id = user_id
        self.email = email


@lru_cache
def jwks_client(issuer: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(f"{issuer.rstrip('/')}/.well-known/jwks.json")


def decode_session_token(token: str, issuer: str = "") -> Dict[str, Any]:
    """Claims of a Clerk session token; raises ``jwt.PyJWTError`` when invalid."""
    if not issuer:
        return jwt.decode(token, options={"verify_signature": False})

    signing_key = jwks_client(issuer).get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        issuer=issuer,
        options={"verify_aud": False},
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> ClerkUser:
    """Dependency for every authenticated route; 401 on a missing or bad token."""
    if not credentials:
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_session_token(credentials.credentials, settings.clerk_issuer)
    except jwt.PyJWTError as e:
        logger.warning("Token validation failed", error=str(e))
        raise _unauthorized("Invalid token")

    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user ID")

    logger.debug("User authenticated", user_id=user_id)
    return ClerkUser(user_id=user_id, email=claims.get("email"))
