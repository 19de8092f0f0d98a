import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .. import schemas
from ..config import settings
from ..database import commit_or_raise
from ..errors import ConflictError, NotFoundError, QuotaExceededError
from ..models import BuildLogEntry, HopUpPart, Model, Photo, User, utcnow
from ..slugs import public_slug
from .ownership import get_owned_model

logger = logging.getLogger(__name__)

SLUG_ATTEMPTS = 5


def _aggregate_options():
    return (
        selectinload(Model.photos),
        selectinload(Model.build_log_entries).selectinload(BuildLogEntry.photos),
        selectinload(Model.hop_up_parts).selectinload(HopUpPart.photo),
    )


def _recent_entries(db: Session, model_ids: List[int], limit: int) -> Dict[int, list]:
    if not model_ids:
        return {}
    rank = (
        func.row_number()
        .over(
            partition_by=BuildLogEntry.model_id,
            order_by=(BuildLogEntry.entry_date.desc(), BuildLogEntry.id.desc()),
        )
        .label("rank")
    )
    ranked = (
        select(BuildLogEntry.id, rank)
        .where(BuildLogEntry.model_id.in_(model_ids))
        .subquery()
    )
    stmt = (
        select(BuildLogEntry)
        .join(ranked, BuildLogEntry.id == ranked.c.id)
        .where(ranked.c.rank <= limit)
        .options(selectinload(BuildLogEntry.photos))
        .order_by(BuildLogEntry.entry_date.desc(), BuildLogEntry.id.desc())
    )
    grouped = defaultdict(list)
    for entry in db.execute(stmt).scalars():
        grouped[entry.model_id].append(entry)
    return grouped


def list_models(db: Session, owner_id: int) -> List[Model]:
    """Owned models, most recently updated first, with a bounded build-log slice."""
    stmt = (
        select(Model)
        .where(Model.owner_id == owner_id)
        .options(
            selectinload(Model.photos),
            selectinload(Model.hop_up_parts).selectinload(HopUpPart.photo),
        )
        .order_by(Model.updated_at.desc(), Model.id.desc())
    )
    result = list(db.execute(stmt).scalars())
    recent = _recent_entries(
        db, [m.id for m in result], settings.RECENT_BUILD_LOG_LIMIT
    )
    for model in result:
        model.recent_build_log_entries = recent.get(model.id, [])
    return result


def get_model(db: Session, model_id: int, owner_id: int) -> Model:
    stmt = (
        select(Model)
        .where(Model.id == model_id, Model.owner_id == owner_id)
        .options(*_aggregate_options())
    )
    model = db.execute(stmt).scalar_one_or_none()
    if model is None:
        raise NotFoundError("Model not found", code="model_not_found")
    return model


def create_model(db: Session, data) -> Model:
    data = schemas.validate(schemas.ModelCreate, data)
    model = Model(**data.model_dump())
    db.add(model)
    commit_or_raise(db)
    db.refresh(model)
    logger.info("model %s created for user %s", model.id, model.owner_id)
    return model


def _unused_slug(db: Session, name: str) -> str:
    for _ in range(SLUG_ATTEMPTS):
        slug = public_slug(name)
        taken = db.execute(
            select(Model.id).where(Model.public_slug == slug)
        ).first()
        if taken is None:
            return slug
    raise ConflictError("Could not allocate a public link, try again", code="slug_taken")


def update_model(db: Session, model_id: int, owner_id: int, data) -> Model:
    """Apply a partial update; sharing a model for the first time gives it a slug.

    The slug is written in the same commit as the rest of the update while the
    model row is locked.
    """
    changes = schemas.validate(schemas.ModelUpdate, data).changes()
    model = get_owned_model(db, model_id, owner_id, lock=True)
    # the slug is drawn before anything is assigned so a failure leaves the row clean
    slug = None
    if changes.get("is_shared", model.is_shared) and not model.public_slug:
        slug = _unused_slug(db, changes.get("name", model.name))
    for field, value in changes.items():
        setattr(model, field, value)
    if slug:
        model.public_slug = slug
        logger.info("model %s shared as %s", model.id, slug)
    model.updated_at = utcnow()
    commit_or_raise(db, "Public link already in use", "slug_taken")
    db.refresh(model)
    return model


def delete_model(db: Session, model_id: int, owner_id: int) -> bool:
    model = db.execute(
        select(Model).where(Model.id == model_id, Model.owner_id == owner_id)
    ).scalar_one_or_none()
    if model is None:
        return False
    db.delete(model)
    commit_or_raise(db)
    logger.info("model %s deleted by user %s", model_id, owner_id)
    return True


def photo_filenames(db: Session, model_id: int, owner_id: int) -> List[str]:
    """Stored filenames of an owned model's photos; empty when not owned."""
    stmt = (
        select(Photo.filename)
        .join(Model, Photo.model_id == Model.id)
        .where(Model.id == model_id, Model.owner_id == owner_id)
    )
    return list(db.execute(stmt).scalars())


def model_total_investment(db: Session, model_id: int, owner_id: int) -> Decimal:
    """Own cost plus every hop-up part cost.

    Differs from ``stats_repo.aggregate_stats``, which sums own costs only.
    """
    return get_model(db, model_id, owner_id).total_investment


def installed_parts_value(db: Session, model_id: int, owner_id: int) -> Decimal:
    return get_model(db, model_id, owner_id).installed_parts_value


def count_models(db: Session, owner_id: int) -> int:
    return db.execute(
        select(func.count(Model.id)).where(Model.owner_id == owner_id)
    ).scalar_one()


def check_model_quota(db: Session, owner_id: int) -> None:
    user = db.get(User, owner_id)
    if user is None:
        raise NotFoundError("User not found", code="user_not_found")
    if count_models(db, owner_id) >= user.model_limit:
        raise QuotaExceededError(
            f"Model limit of {user.model_limit} reached. "
            "Purchase a model pack to add more."
        )
