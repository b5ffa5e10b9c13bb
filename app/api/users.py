import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.errors import AuthorizationError, NotFoundError, PersistenceError
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import User as UserSchema, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_own_user(user_id: UUID, current_user: User, db: Session) -> User:
    """Users may only read and edit their own profile"""
    if user_id != current_user.id:
        raise AuthorizationError()
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("/{user_id}", response_model=UserSchema)
def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_own_user(user_id, current_user, db)


@router.patch("/{user_id}", response_model=UserSchema)
def update_user(
    user_id: UUID,
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = _get_own_user(user_id, current_user, db)

    update_data = user_data.model_dump(exclude_unset=True)
    if "full_name" in update_data:
        user.full_name = update_data["full_name"]
    if "avatar_url" in update_data:
        avatar_url = update_data["avatar_url"]
        user.avatar_url = str(avatar_url) if avatar_url is not None else None

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[USERS] Failed to update user {user_id}: {str(e)}", exc_info=True)
        raise PersistenceError()
    db.refresh(user)
    return user
