import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .. import schemas
from ..database import commit_or_raise
from ..models import Photo
from .ownership import get_child, get_owned_model

logger = logging.getLogger(__name__)


def _get_photo(db: Session, photo_id: int, model_id: int) -> Photo:
    return get_child(db, Photo, photo_id, model_id, "Photo", "photo_not_found")


def _clear_flags(db: Session, model_id: int) -> None:
    db.execute(
        update(Photo)
        .where(Photo.model_id == model_id, Photo.is_box_art.is_(True))
        .values(is_box_art=False)
    )


def list_photos(db: Session, model_id: int, owner_id: int) -> List[Photo]:
    model = get_owned_model(db, model_id, owner_id)
    stmt = (
        select(Photo)
        .where(Photo.model_id == model.id)
        .order_by(Photo.sort_order, Photo.id)
    )
    return list(db.execute(stmt).scalars())


def get_photo(db: Session, model_id: int, photo_id: int, owner_id: int) -> Photo:
    model = get_owned_model(db, model_id, owner_id)
    return _get_photo(db, photo_id, model.id)


def create_photo(db: Session, model_id: int, owner_id: int, data) -> Photo:
    data = schemas.validate(schemas.PhotoCreate, data)
    model = get_owned_model(db, model_id, owner_id, lock=data.is_box_art)
    if data.is_box_art:
        _clear_flags(db, model.id)
    photo = Photo(model_id=model.id, **data.model_dump())
    db.add(photo)
    commit_or_raise(db)
    db.refresh(photo)
    logger.info("photo %s added to model %s", photo.id, model.id)
    return photo


def update_photo(
    db: Session, model_id: int, photo_id: int, owner_id: int, data
) -> Photo:
    changes = schemas.validate(schemas.PhotoUpdate, data).changes()
    becomes_box_art = changes.get("is_box_art") is True
    model = get_owned_model(db, model_id, owner_id, lock=becomes_box_art)
    photo = _get_photo(db, photo_id, model.id)
    if becomes_box_art:
        _clear_flags(db, model.id)
    for field, value in changes.items():
        setattr(photo, field, value)
    commit_or_raise(db)
    db.refresh(photo)
    return photo


def delete_photo(db: Session, model_id: int, photo_id: int, owner_id: int) -> bool:
    model = get_owned_model(db, model_id, owner_id)
    photo = db.execute(
        select(Photo).where(Photo.id == photo_id, Photo.model_id == model.id)
    ).scalar_one_or_none()
    if photo is None:
        return False
    db.delete(photo)
    commit_or_raise(db)
    logger.info("photo %s deleted from model %s", photo_id, model.id)
    return True


def clear_box_art(db: Session, model_id: int, owner_id: int) -> None:
    model = get_owned_model(db, model_id, owner_id, lock=True)
    _clear_flags(db, model.id)
    commit_or_raise(db)


def set_box_art(db: Session, model_id: int, photo_id: int, owner_id: int) -> Photo:
    """Make ``photo_id`` the only box-art photo of the model, atomically."""
    model = get_owned_model(db, model_id, owner_id, lock=True)
    photo = _get_photo(db, photo_id, model.id)
    _clear_flags(db, model.id)
    photo.is_box_art = True
    commit_or_raise(db)
    db.refresh(photo)
    return photo
