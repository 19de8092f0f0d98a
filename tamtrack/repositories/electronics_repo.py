"""The owner's electronics bin and the electronics fitted to each model.

Electronics belong to a user, not to a model. A model's fitting only points
at items from its owner's bin, one slot per kind.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import schemas
from ..database import commit_or_raise
from ..errors import NotFoundError, ValidationError
from ..models import Electronic, ModelElectronics, utcnow
from .ownership import get_owned_model

logger = logging.getLogger(__name__)

SLOTS = {
    "motor_id": "motor",
    "esc_id": "esc",
    "servo_id": "servo",
    "receiver_id": "receiver",
}


def _fitting_options():
    return (
        selectinload(ModelElectronics.motor),
        selectinload(ModelElectronics.esc),
        selectinload(ModelElectronics.servo),
        selectinload(ModelElectronics.receiver),
    )


def list_electronics(
    db: Session, owner_id: int, kind: Optional[str] = None
) -> List[Electronic]:
    stmt = select(Electronic).where(Electronic.owner_id == owner_id)
    if kind is not None:
        stmt = stmt.where(Electronic.kind == kind)
    stmt = stmt.order_by(Electronic.created_at.desc(), Electronic.id.desc())
    return list(db.execute(stmt).scalars())


def get_electronic(db: Session, item_id: int, owner_id: int) -> Electronic:
    item = db.execute(
        select(Electronic).where(
            Electronic.id == item_id, Electronic.owner_id == owner_id
        )
    ).scalar_one_or_none()
    if item is None:
        logger.debug("electronic %s not found for user %s", item_id, owner_id)
        raise NotFoundError("Electronics item not found", code="electronic_not_found")
    return item


def create_electronic(db: Session, owner_id: int, data) -> Electronic:
    data = schemas.validate(schemas.ElectronicCreate, data)
    values = data.model_dump()
    values["specs"] = schemas.validate_specs(data.kind, data.specs)
    item = Electronic(owner_id=owner_id, **values)
    db.add(item)
    commit_or_raise(db)
    db.refresh(item)
    logger.info("%s %s added for user %s", item.kind, item.id, owner_id)
    return item


def update_electronic(db: Session, item_id: int, owner_id: int, data) -> Electronic:
    """Partial update; the kind is fixed and ``specs`` is replaced as a whole."""
    changes = schemas.validate(schemas.ElectronicUpdate, data).changes()
    item = get_electronic(db, item_id, owner_id)
    if "specs" in changes:
        changes["specs"] = schemas.validate_specs(item.kind, changes["specs"])
    for field, value in changes.items():
        setattr(item, field, value)
    commit_or_raise(db)
    db.refresh(item)
    return item


def delete_electronic(db: Session, item_id: int, owner_id: int) -> bool:
    """Remove an item; any model it was fitted to has that slot emptied."""
    item = db.execute(
        select(Electronic).where(
            Electronic.id == item_id, Electronic.owner_id == owner_id
        )
    ).scalar_one_or_none()
    if item is None:
        return False
    fittings = db.execute(
        select(ModelElectronics).where(
            (ModelElectronics.motor_id == item.id)
            | (ModelElectronics.esc_id == item.id)
            | (ModelElectronics.servo_id == item.id)
            | (ModelElectronics.receiver_id == item.id)
        )
    ).scalars()
    for fitting in fittings:
        for field in SLOTS:
            if getattr(fitting, field) == item.id:
                setattr(fitting, field, None)
    kind = item.kind
    db.delete(item)
    commit_or_raise(db)
    logger.info("%s %s deleted by user %s", kind, item_id, owner_id)
    return True


def _load_fitting(db: Session, model_id: int) -> Optional[ModelElectronics]:
    return db.execute(
        select(ModelElectronics)
        .where(ModelElectronics.model_id == model_id)
        .options(*_fitting_options())
    ).scalar_one_or_none()


def get_model_electronics(db: Session, model_id: int, owner_id: int) -> ModelElectronics:
    model = get_owned_model(db, model_id, owner_id)
    fitting = _load_fitting(db, model.id)
    if fitting is None:
        raise NotFoundError(
            "No electronics assigned to this model", code="model_electronics_not_found"
        )
    return fitting


def _check_slots(db: Session, owner_id: int, changes: dict) -> None:
    problems = []
    for field, kind in SLOTS.items():
        item_id = changes.get(field)
        if item_id is None:
            continue
        found = db.execute(
            select(Electronic.id).where(
                Electronic.id == item_id,
                Electronic.owner_id == owner_id,
                Electronic.kind == kind,
            )
        ).first()
        if found is None:
            problems.append(
                {
                    "loc": [field],
                    "msg": f"Must be one of your {kind} items",
                    "type": "value_error",
                }
            )
    if problems:
        raise ValidationError(errors=problems)


def upsert_model_electronics(
    db: Session, model_id: int, owner_id: int, data
) -> ModelElectronics:
    """Create or partially update the fitting of an owned model."""
    changes = schemas.validate(schemas.ModelElectronicsUpdate, data).changes()
    model = get_owned_model(db, model_id, owner_id, lock=True)
    _check_slots(db, owner_id, changes)
    fitting = _load_fitting(db, model.id)
    if fitting is None:
        fitting = ModelElectronics(model_id=model.id)
        db.add(fitting)
    for field, value in changes.items():
        setattr(fitting, field, value)
    fitting.updated_at = utcnow()
    commit_or_raise(db)
    logger.info("electronics of model %s updated", model.id)
    return _load_fitting(db, model.id)


def delete_model_electronics(db: Session, model_id: int, owner_id: int) -> bool:
    model = get_owned_model(db, model_id, owner_id)
    fitting = _load_fitting(db, model.id)
    if fitting is None:
        return False
    db.delete(fitting)
    commit_or_raise(db)
    return True
