import logging
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import schemas
from ..database import commit_or_raise
from ..errors import ValidationError
from ..models import BuildLogEntry, Model, Photo, utcnow
from .ownership import get_child, get_owned_model

logger = logging.getLogger(__name__)


def _get_entry(db: Session, entry_id: int, model_id: int) -> BuildLogEntry:
    return get_child(
        db, BuildLogEntry, entry_id, model_id, "Build log entry", "entry_not_found"
    )


def _model_photos(db: Session, model_id: int, photo_ids: Iterable[int]) -> List[Photo]:
    wanted = set(photo_ids)
    if not wanted:
        return []
    found = list(
        db.execute(
            select(Photo).where(Photo.id.in_(wanted), Photo.model_id == model_id)
        ).scalars()
    )
    if len(found) != len(wanted):
        raise ValidationError.for_field(
            "photo_ids", "Every linked photo must belong to the same model"
        )
    return sorted(found, key=lambda p: p.id)


def list_entries(db: Session, model_id: int, owner_id: int) -> List[BuildLogEntry]:
    model = get_owned_model(db, model_id, owner_id)
    stmt = (
        select(BuildLogEntry)
        .where(BuildLogEntry.model_id == model.id)
        .options(selectinload(BuildLogEntry.photos))
        .order_by(BuildLogEntry.entry_date.desc(), BuildLogEntry.id.desc())
    )
    return list(db.execute(stmt).scalars())


def list_all_entries(db: Session, owner_id: int) -> List[BuildLogEntry]:
    """Entries across every model the user owns, newest first."""
    stmt = (
        select(BuildLogEntry)
        .join(Model, BuildLogEntry.model_id == Model.id)
        .where(Model.owner_id == owner_id)
        .options(selectinload(BuildLogEntry.photos), selectinload(BuildLogEntry.model))
        .order_by(BuildLogEntry.created_at.desc(), BuildLogEntry.id.desc())
    )
    return list(db.execute(stmt).scalars())


def get_entry(db: Session, model_id: int, entry_id: int, owner_id: int) -> BuildLogEntry:
    model = get_owned_model(db, model_id, owner_id)
    return _get_entry(db, entry_id, model.id)


def create_entry(db: Session, model_id: int, owner_id: int, data) -> BuildLogEntry:
    data = schemas.validate(schemas.BuildLogEntryCreate, data)
    model = get_owned_model(db, model_id, owner_id)
    fields = data.model_dump(exclude={"photo_ids"})
    if fields["entry_date"] is None:
        fields["entry_date"] = utcnow()
    entry = BuildLogEntry(model_id=model.id, **fields)
    entry.photos = _model_photos(db, model.id, data.photo_ids)
    db.add(entry)
    commit_or_raise(db)
    db.refresh(entry)
    logger.info("build log entry %s added to model %s", entry.id, model.id)
    return entry


def update_entry(
    db: Session, model_id: int, entry_id: int, owner_id: int, data
) -> BuildLogEntry:
    changes = schemas.validate(schemas.BuildLogEntryUpdate, data).changes()
    model = get_owned_model(db, model_id, owner_id)
    entry = _get_entry(db, entry_id, model.id)
    photo_ids = changes.pop("photo_ids", None)
    photos = None if photo_ids is None else _model_photos(db, model.id, photo_ids)
    for field, value in changes.items():
        setattr(entry, field, value)
    if photos is not None:
        entry.photos = photos
    commit_or_raise(db)
    db.refresh(entry)
    return entry


def delete_entry(db: Session, model_id: int, entry_id: int, owner_id: int) -> bool:
    model = get_owned_model(db, model_id, owner_id)
    entry = db.execute(
        select(BuildLogEntry).where(
            BuildLogEntry.id == entry_id, BuildLogEntry.model_id == model.id
        )
    ).scalar_one_or_none()
    if entry is None:
        return False
    db.delete(entry)
    commit_or_raise(db)
    return True


def add_photos_to_entry(
    db: Session, model_id: int, entry_id: int, owner_id: int, photo_ids: List[int]
) -> BuildLogEntry:
    model = get_owned_model(db, model_id, owner_id)
    entry = _get_entry(db, entry_id, model.id)
    linked = {p.id for p in entry.photos}
    for photo in _model_photos(db, model.id, photo_ids):
        if photo.id not in linked:
            entry.photos.append(photo)
    commit_or_raise(db)
    db.refresh(entry)
    return entry
