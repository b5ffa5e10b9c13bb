import logging
import uuid
from typing import Iterator, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthenticationError, ConfigurationError
from app.core.security import decode_access_token
from app.db.session import get_db
from app.models.user import User
from app.services.polar_client import PolarClient

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _mirror_user(db: Session, user_id: uuid.UUID, claims: dict) -> User:
    """Create the local row for a provider identity seen for the first time."""
    email = claims.get("email")
    if not email:
        raise AuthenticationError()

    user_metadata = claims.get("user_metadata") or {}
    user = User(
        id=user_id,
        email=email,
        full_name=user_metadata.get("full_name"),
        avatar_url=user_metadata.get("avatar_url"),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request mirrored the same identity first
        db.rollback()
        user = db.get(User, user_id)
        if user is None:
            logger.error(f"[AUTH] Could not mirror user {user_id}: email {email} already taken")
            raise AuthenticationError()
        return user

    db.refresh(user)
    logger.info(f"[AUTH] Mirrored new user {user_id}")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the provider-issued bearer token.
    The first request of an unknown identity creates its local mirror from the token claims.
    """
    if credentials is None:
        raise AuthenticationError()

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise AuthenticationError()

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError:
        logger.info(f"[AUTH] Token subject is not a user id: {claims.get('sub')!r}")
        raise AuthenticationError()

    user = db.get(User, user_id)
    if user is None:
        user = _mirror_user(db, user_id, claims)
    return user


def get_polar_client() -> Iterator[PolarClient]:
    """Per-request Polar client built from settings"""
    if not settings.POLAR_ACCESS_TOKEN or not settings.POLAR_ORGANIZATION_ID:
        logger.error("[POLAR] POLAR_ACCESS_TOKEN and POLAR_ORGANIZATION_ID must be set")
        raise ConfigurationError()

    client = PolarClient(
        access_token=settings.POLAR_ACCESS_TOKEN,
        organization_id=settings.POLAR_ORGANIZATION_ID,
        base_url=settings.POLAR_API_URL,
        timeout=settings.POLAR_TIMEOUT_SECONDS,
    )
    try:
        yield client
    finally:
        client.close()
