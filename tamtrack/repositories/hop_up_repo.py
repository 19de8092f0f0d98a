import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import schemas
from ..database import commit_or_raise
from ..errors import ValidationError
from ..models import HopUpPart, Model, Photo
from .ownership import get_child, get_owned_model

logger = logging.getLogger(__name__)


def _get_part(db: Session, part_id: int, model_id: int) -> HopUpPart:
    return get_child(db, HopUpPart, part_id, model_id, "Hop-up part", "part_not_found")


def _check_photo(db: Session, model_id: int, photo_id: Optional[int]) -> None:
    if photo_id is None:
        return
    found = db.execute(
        select(Photo.id).where(Photo.id == photo_id, Photo.model_id == model_id)
    ).first()
    if found is None:
        raise ValidationError.for_field(
            "photo_id", "Product photo must belong to the same model"
        )


def list_parts(db: Session, model_id: int, owner_id: int) -> List[HopUpPart]:
    model = get_owned_model(db, model_id, owner_id)
    stmt = (
        select(HopUpPart)
        .where(HopUpPart.model_id == model.id)
        .options(selectinload(HopUpPart.photo))
        .order_by(HopUpPart.created_at.desc(), HopUpPart.id.desc())
    )
    return list(db.execute(stmt).scalars())


def list_all_parts(db: Session, owner_id: int) -> List[HopUpPart]:
    stmt = (
        select(HopUpPart)
        .join(Model, HopUpPart.model_id == Model.id)
        .where(Model.owner_id == owner_id)
        .options(selectinload(HopUpPart.photo), selectinload(HopUpPart.model))
        .order_by(HopUpPart.created_at.desc(), HopUpPart.id.desc())
    )
    return list(db.execute(stmt).scalars())


def get_part(db: Session, model_id: int, part_id: int, owner_id: int) -> HopUpPart:
    model = get_owned_model(db, model_id, owner_id)
    return _get_part(db, part_id, model.id)


def create_part(db: Session, model_id: int, owner_id: int, data) -> HopUpPart:
    data = schemas.validate(schemas.HopUpPartCreate, data)
    model = get_owned_model(db, model_id, owner_id)
    _check_photo(db, model.id, data.photo_id)
    part = HopUpPart(model_id=model.id, **data.model_dump())
    db.add(part)
    commit_or_raise(db)
    db.refresh(part)
    logger.info("hop-up part %s added to model %s", part.id, model.id)
    return part


def update_part(
    db: Session, model_id: int, part_id: int, owner_id: int, data
) -> HopUpPart:
    changes = schemas.validate(schemas.HopUpPartUpdate, data).changes()
    model = get_owned_model(db, model_id, owner_id)
    part = _get_part(db, part_id, model.id)
    _check_photo(db, model.id, changes.get("photo_id"))
    for field, value in changes.items():
        setattr(part, field, value)
    commit_or_raise(db)
    db.refresh(part)
    return part


def delete_part(db: Session, model_id: int, part_id: int, owner_id: int) -> bool:
    model = get_owned_model(db, model_id, owner_id)
    part = db.execute(
        select(HopUpPart).where(HopUpPart.id == part_id, HopUpPart.model_id == model.id)
    ).scalar_one_or_none()
    if part is None:
        return False
    db.delete(part)
    commit_or_raise(db)
    return True
