"""Operator actions over every account.

Each mutating action writes an ``AdminAuditLog`` row in the same commit as
the change it records.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .. import schemas
from ..database import commit_or_raise
from ..errors import NotFoundError, PermissionDeniedError
from ..models import (
    AdminAuditLog,
    FeedbackPost,
    FeedbackVote,
    Model,
    Photo,
    User,
    UserActivity,
)
from .user_repo import get_user

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    admin_id: int,
    action: str,
    target_user_id: Optional[int] = None,
    details: Optional[dict] = None,
) -> None:
    db.add(
        AdminAuditLog(
            admin_id=admin_id,
            action=action,
            target_user_id=target_user_id,
            details=details or {},
        )
    )


def _count(db: Session, stmt) -> int:
    return db.execute(stmt).scalar_one()


def dashboard_stats(db: Session) -> schemas.DashboardStats:
    return schemas.DashboardStats(
        total_users=_count(db, select(func.count(User.id))),
        total_models=_count(db, select(func.count(Model.id))),
        total_photos=_count(db, select(func.count(Photo.id))),
        shared_models=_count(
            db, select(func.count(Model.id)).where(Model.is_shared.is_(True))
        ),
        open_feedback=_count(
            db,
            select(func.count(FeedbackPost.id)).where(FeedbackPost.status == "open"),
        ),
    )


def list_users_with_stats(db: Session) -> List[schemas.AdminUserOut]:
    model_counts = (
        select(Model.owner_id, func.count(Model.id).label("n"))
        .group_by(Model.owner_id)
        .subquery()
    )
    photo_counts = (
        select(Model.owner_id, func.count(Photo.id).label("n"))
        .join(Photo, Photo.model_id == Model.id)
        .group_by(Model.owner_id)
        .subquery()
    )
    rows = db.execute(
        select(
            User,
            func.coalesce(model_counts.c.n, 0),
            func.coalesce(photo_counts.c.n, 0),
        )
        .outerjoin(model_counts, model_counts.c.owner_id == User.id)
        .outerjoin(photo_counts, photo_counts.c.owner_id == User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    ).all()
    result = []
    for user, model_count, photo_count in rows:
        out = schemas.UserOut.model_validate(user).model_dump()
        result.append(
            schemas.AdminUserOut(
                **out, model_count=model_count, photo_count=photo_count
            )
        )
    return result


def grant_models(db: Session, admin_id: int, user_id: int, data) -> User:
    data = schemas.validate(schemas.GrantModels, data)
    user = get_user(db, user_id)
    user.model_limit = User.model_limit + data.model_count
    user.manually_granted_models = User.manually_granted_models + data.model_count
    record_audit(db, admin_id, "grant_models", user.id, {"model_count": data.model_count})
    commit_or_raise(db)
    db.refresh(user)
    logger.info(
        "admin %s granted %s models to user %s", admin_id, data.model_count, user_id
    )
    return user


def user_photo_filenames(db: Session, user_id: int) -> List[str]:
    stmt = (
        select(Photo.filename)
        .join(Model, Photo.model_id == Model.id)
        .where(Model.owner_id == user_id)
    )
    return list(db.execute(stmt).scalars())


def delete_user(db: Session, admin_id: int, user_id: int) -> bool:
    """Hard-delete an account with everything it owns.

    Votes the user cast on other people's posts are taken off their counters
    in the same commit.
    """
    if user_id == admin_id:
        raise PermissionDeniedError("Admins cannot delete their own account")
    user = db.get(User, user_id)
    if user is None:
        return False
    voted = select(FeedbackVote.post_id).where(FeedbackVote.user_id == user.id)
    db.execute(
        update(FeedbackPost)
        .where(FeedbackPost.id.in_(voted), FeedbackPost.vote_count > 0)
        .values(vote_count=FeedbackPost.vote_count - 1)
        .execution_options(synchronize_session=False)
    )
    record_audit(db, admin_id, "delete_user", user.id, {"email": user.email})
    db.delete(user)
    commit_or_raise(db)
    logger.warning("admin %s deleted user %s", admin_id, user_id)
    return True


def list_shared_models(db: Session) -> List[schemas.AdminSharedModelOut]:
    photo_counts = (
        select(Photo.model_id, func.count(Photo.id).label("n"))
        .group_by(Photo.model_id)
        .subquery()
    )
    rows = db.execute(
        select(Model, User, func.coalesce(photo_counts.c.n, 0))
        .join(User, Model.owner_id == User.id)
        .outerjoin(photo_counts, photo_counts.c.model_id == Model.id)
        .where(Model.is_shared.is_(True))
        .order_by(Model.updated_at.desc(), Model.id.desc())
    ).all()
    return [
        schemas.AdminSharedModelOut(
            model=schemas.ModelOut.model_validate(model),
            owner_id=owner.id,
            owner_email=owner.email,
            share_preference=owner.share_preference,
            photo_count=photo_count,
        )
        for model, owner, photo_count in rows
    ]


def unshare_model(db: Session, admin_id: int, model_id: int, data) -> Model:
    """Take a model out of the community listing; its slug is kept."""
    data = schemas.validate(schemas.UnshareRequest, data)
    model = db.execute(
        select(Model).where(Model.id == model_id).with_for_update()
    ).scalar_one_or_none()
    if model is None:
        raise NotFoundError("Model not found", code="model_not_found")
    model.is_shared = False
    record_audit(
        db,
        admin_id,
        "unshare_model",
        model.owner_id,
        {"model_id": model.id, "reason": data.reason},
    )
    # the owner sees the same event in their own activity
    db.add(
        UserActivity(
            user_id=model.owner_id,
            activity_type="model_unshared_by_admin",
            details={"model_id": model.id, "model_name": model.name, "reason": data.reason},
        )
    )
    commit_or_raise(db)
    db.refresh(model)
    logger.info("admin %s unshared model %s: %s", admin_id, model_id, data.reason)
    return model
