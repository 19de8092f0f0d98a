"""Admin-managed choices for free-text model and hop-up part fields.

Options are suggestions: models keep accepting any value. Replacing an
option's value rewrites every model or part that used the old value.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .. import schemas
from ..database import commit_or_raise
from ..errors import NotFoundError
from ..models import FieldOption, HopUpPart, Model, utcnow
from .admin_repo import record_audit

logger = logging.getLogger(__name__)

FIELD_COLUMNS = {
    "scale": (Model, Model.scale),
    "drive_type": (Model, Model.drive_type),
    "body_material": (Model, Model.body_material),
    "battery": (Model, Model.battery),
    "hop_up_category": (HopUpPart, HopUpPart.category),
}


def list_options(
    db: Session, field_key: Optional[str] = None, active_only: bool = False
) -> List[FieldOption]:
    stmt = select(FieldOption)
    if field_key is not None:
        stmt = stmt.where(FieldOption.field_key == field_key)
    if active_only:
        stmt = stmt.where(FieldOption.is_active.is_(True))
    stmt = stmt.order_by(FieldOption.field_key, FieldOption.sort_order, FieldOption.id)
    return list(db.execute(stmt).scalars())


def active_values(db: Session) -> Dict[str, List[str]]:
    """Active option values grouped by field, every known field present."""
    grouped = {key: [] for key in FIELD_COLUMNS}
    for option in list_options(db, active_only=True):
        grouped[option.field_key].append(option.value)
    return grouped


def get_option(db: Session, option_id: int) -> FieldOption:
    option = db.get(FieldOption, option_id)
    if option is None:
        raise NotFoundError("Field option not found", code="field_option_not_found")
    return option


def create_option(db: Session, admin_id: int, data) -> FieldOption:
    data = schemas.validate(schemas.FieldOptionCreate, data)
    option = FieldOption(**data.model_dump())
    db.add(option)
    record_audit(
        db,
        admin_id,
        "create_field_option",
        details={"field_key": data.field_key, "value": data.value},
    )
    commit_or_raise(db, "Option already exists for this field", "field_option_exists")
    db.refresh(option)
    return option


def update_option(db: Session, admin_id: int, option_id: int, data) -> FieldOption:
    changes = schemas.validate(schemas.FieldOptionUpdate, data).changes()
    option = get_option(db, option_id)
    for field, value in changes.items():
        setattr(option, field, value)
    option.updated_at = utcnow()
    record_audit(db, admin_id, "update_field_option", details={"id": option.id, **changes})
    commit_or_raise(db)
    db.refresh(option)
    return option


def delete_option(db: Session, admin_id: int, option_id: int) -> bool:
    option = db.get(FieldOption, option_id)
    if option is None:
        return False
    record_audit(
        db,
        admin_id,
        "delete_field_option",
        details={"field_key": option.field_key, "value": option.value},
    )
    db.delete(option)
    commit_or_raise(db)
    return True


def usage_count(db: Session, option_id: int) -> int:
    option = get_option(db, option_id)
    table, column = FIELD_COLUMNS[option.field_key]
    return db.execute(
        select(func.count()).select_from(table).where(column == option.value)
    ).scalar_one()


def replace_value(db: Session, admin_id: int, option_id: int, data):
    """Rename an option and every stored use of it in one commit.

    Returns the option and the number of rows rewritten.
    """
    data = schemas.validate(schemas.FieldOptionReplace, data)
    option = get_option(db, option_id)
    old_value = option.value
    table, column = FIELD_COLUMNS[option.field_key]
    updated = db.execute(
        update(table)
        .where(column == old_value)
        .values({column: data.new_value})
        .execution_options(synchronize_session=False)
    ).rowcount
    option.value = data.new_value
    option.updated_at = utcnow()
    record_audit(
        db,
        admin_id,
        "replace_field_option",
        details={
            "field_key": option.field_key,
            "old_value": old_value,
            "new_value": data.new_value,
            "updated_rows": updated,
        },
    )
    commit_or_raise(db, "Option already exists for this field", "field_option_exists")
    db.refresh(option)
    logger.info(
        "field option %s renamed %r -> %r on %s rows",
        option.id,
        old_value,
        data.new_value,
        updated,
    )
    return option, updated
