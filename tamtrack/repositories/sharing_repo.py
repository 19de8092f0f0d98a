"""Read access to other users' models.

A model is visible to someone other than its owner only while it is shared
and the owner's share preference admits the viewer. The preference is read
on every call since the owner may change it between requests.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import schemas
from ..errors import NotFoundError
from ..models import BuildLogEntry, HopUpPart, Model, ModelElectronics, Photo, User

logger = logging.getLogger(__name__)


def can_view(owner: User, is_shared: bool, viewer_id: Optional[int]) -> bool:
    if viewer_id is not None and viewer_id == owner.id:
        return True
    if not is_shared:
        return False
    if owner.share_preference == "public":
        return True
    if owner.share_preference == "authenticated":
        return viewer_id is not None
    return False


def list_shared_models(db: Session, viewer_id: Optional[int]) -> List[Model]:
    allowed = ["public", "authenticated"] if viewer_id is not None else ["public"]
    stmt = (
        select(Model)
        .join(User, Model.owner_id == User.id)
        .where(Model.is_shared.is_(True), User.share_preference.in_(allowed))
        .options(
            selectinload(Model.owner),
            selectinload(Model.photos),
            selectinload(Model.hop_up_parts),
        )
        .order_by(Model.updated_at.desc(), Model.id.desc())
    )
    return list(db.execute(stmt).scalars())


def get_shared_model(
    db: Session, slug: str, viewer_id: Optional[int], writable: bool = False
) -> Model:
    """Load a model by its public link.

    The owner can still read an unshared model through its slug, but
    ``writable`` lookups (posting comments) need the model to be shared.
    """
    stmt = (
        select(Model)
        .where(Model.public_slug == slug)
        .options(
            selectinload(Model.owner),
            selectinload(Model.photos),
            selectinload(Model.hop_up_parts),
        )
    )
    model = db.execute(stmt).scalar_one_or_none()
    if (
        model is None
        or not can_view(model.owner, model.is_shared, viewer_id)
        or (writable and not model.is_shared)
    ):
        logger.debug("shared model %r hidden from viewer %s", slug, viewer_id)
        raise NotFoundError("Shared model not found", code="shared_model_not_found")
    return model


def get_shared_photos(db: Session, slug: str, viewer_id: Optional[int]) -> List[Photo]:
    model = get_shared_model(db, slug, viewer_id)
    return list(
        db.execute(
            select(Photo)
            .where(Photo.model_id == model.id)
            .order_by(Photo.sort_order, Photo.id)
        ).scalars()
    )


def get_shared_hop_ups(
    db: Session, slug: str, viewer_id: Optional[int]
) -> List[schemas.PublicHopUpPartOut]:
    """Hop-up parts of a visible model with their costs stripped."""
    model = get_shared_model(db, slug, viewer_id)
    parts = db.execute(
        select(HopUpPart)
        .where(HopUpPart.model_id == model.id)
        .options(selectinload(HopUpPart.photo))
        .order_by(HopUpPart.created_at.desc(), HopUpPart.id.desc())
    ).scalars()
    return [schemas.PublicHopUpPartOut.model_validate(part) for part in parts]


def get_shared_build_logs(
    db: Session, slug: str, viewer_id: Optional[int]
) -> List[BuildLogEntry]:
    model = get_shared_model(db, slug, viewer_id)
    return list(
        db.execute(
            select(BuildLogEntry)
            .where(BuildLogEntry.model_id == model.id)
            .options(selectinload(BuildLogEntry.photos))
            .order_by(BuildLogEntry.entry_date.desc(), BuildLogEntry.id.desc())
        ).scalars()
    )


def get_shared_electronics(
    db: Session, slug: str, viewer_id: Optional[int]
) -> Optional[schemas.PublicModelElectronicsOut]:
    """Electronics fitted to a visible model, without costs or notes."""
    model = get_shared_model(db, slug, viewer_id)
    fitting = db.execute(
        select(ModelElectronics)
        .where(ModelElectronics.model_id == model.id)
        .options(
            selectinload(ModelElectronics.motor),
            selectinload(ModelElectronics.esc),
            selectinload(ModelElectronics.servo),
            selectinload(ModelElectronics.receiver),
        )
    ).scalar_one_or_none()
    if fitting is None:
        return None
    return schemas.PublicModelElectronicsOut.model_validate(fitting)
