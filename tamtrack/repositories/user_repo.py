import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .. import schemas
from ..database import commit_or_raise
from ..errors import ConflictError, NotFoundError
from ..models import User

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", code="user_not_found")
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_user(
    db: Session,
    data,
    hashed_password: Optional[str],
    auth_provider: str = "password",
    is_admin: bool = False,
) -> User:
    if isinstance(data, schemas.UserCreate):
        email, display_name = data.email, data.display_name
    else:
        base = schemas.validate(schemas.UserBase, data)
        email, display_name = base.email, base.display_name
    if get_user_by_email(db, email):
        raise ConflictError("Email already registered", code="email_exists")
    user = User(
        email=email,
        display_name=display_name,
        hashed_password=hashed_password,
        auth_provider=auth_provider,
        is_admin=is_admin,
    )
    db.add(user)
    commit_or_raise(db, "Email already registered", "email_exists")
    db.refresh(user)
    logger.info("user %s registered via %s", user.id, auth_provider)
    return user


def update_profile(db: Session, user_id: int, data) -> User:
    data = schemas.validate(schemas.UserUpdate, data)
    user = get_user(db, user_id)
    user.display_name = data.display_name
    commit_or_raise(db)
    db.refresh(user)
    return user


def update_share_preference(db: Session, user_id: int, preference: str) -> User:
    data = schemas.validate(schemas.SharePreferenceUpdate, {"share_preference": preference})
    user = get_user(db, user_id)
    user.share_preference = data.share_preference
    commit_or_raise(db)
    db.refresh(user)
    logger.info("user %s share preference set to %s", user_id, data.share_preference)
    return user


def increment_model_quota(db: Session, user_id: int, count: int) -> User:
    """Raise the user's model limit after a purchase."""
    user = get_user(db, user_id)
    db.execute(
        update(User)
        .where(User.id == user.id)
        .values(model_limit=User.model_limit + count)
        .execution_options(synchronize_session=False)
    )
    commit_or_raise(db)
    db.refresh(user)
    logger.info("user %s model limit raised by %s", user_id, count)
    return user
