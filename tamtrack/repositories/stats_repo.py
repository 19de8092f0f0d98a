from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from .. import schemas
from ..models import Model, Photo

CENTS = Decimal("0.01")


def aggregate_stats(db: Session, owner_id: int) -> schemas.CollectionStats:
    """Collection totals for the dashboard.

    ``total_investment`` adds up each model's own ``total_cost`` only; hop-up
    part costs are left out here even though ``Model.total_investment``
    includes them. Both figures are kept as they are until product decides
    which one is right.
    """
    total_models, active_builds, investment = db.execute(
        select(
            func.count(Model.id),
            func.coalesce(func.sum(case((Model.build_status == "building", 1), else_=0)), 0),
            func.coalesce(func.sum(Model.total_cost), 0),
        ).where(Model.owner_id == owner_id)
    ).one()
    total_photos = db.execute(
        select(func.count(Photo.id))
        .join(Model, Photo.model_id == Model.id)
        .where(Model.owner_id == owner_id)
    ).scalar_one()
    return schemas.CollectionStats(
        total_models=total_models,
        active_builds=active_builds,
        total_investment=Decimal(str(investment)).quantize(CENTS),
        total_photos=total_photos,
    )
