"""
Verification of access tokens issued by the authentication provider.
Token issuance, refresh and session cryptography live with the provider.
"""
import logging
from typing import Any, Dict, Optional

import jwt

from app.core.config import settings

logger = logging.getLogger(__name__)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None if the token is invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        logger.info("[AUTH] Access token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f"[AUTH] Invalid access token: {e}")
        return None
