"""Ownership checks shared by every repository module.

A photo, build-log entry or hop-up part has no owner column of its own. Access
to it is decided by loading the parent model scoped to the caller and then
querying the child by both its id and the verified model id.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models import Model

logger = logging.getLogger(__name__)


def get_owned_model(db: Session, model_id: int, owner_id: int, lock: bool = False) -> Model:
    stmt = select(Model).where(Model.id == model_id, Model.owner_id == owner_id)
    if lock:
        stmt = stmt.with_for_update()
    model = db.execute(stmt).scalar_one_or_none()
    if model is None:
        logger.debug("model %s not found for user %s", model_id, owner_id)
        raise NotFoundError("Model not found", code="model_not_found")
    return model


def get_child(db: Session, child_cls, child_id: int, model_id: int, label: str, code: str):
    """Load a child row scoped to an already verified parent model."""
    stmt = select(child_cls).where(
        child_cls.id == child_id, child_cls.model_id == model_id
    )
    child = db.execute(stmt).scalar_one_or_none()
    if child is None:
        raise NotFoundError(f"{label} not found", code=code)
    return child
