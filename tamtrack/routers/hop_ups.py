from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..errors import NotFoundError
from ..repositories import hop_up_repo
from ..security import get_current_user

router = APIRouter(prefix="/api", tags=["hop-up-parts"])


@router.get("/hop-up-parts", response_model=List[schemas.HopUpPartWithModel])
def list_all_parts(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return hop_up_repo.list_all_parts(db, current_user.id)


@router.get(
    "/models/{model_id}/hop-up-parts", response_model=List[schemas.HopUpPartOut]
)
def list_parts(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return hop_up_repo.list_parts(db, model_id, current_user.id)


@router.post(
    "/models/{model_id}/hop-up-parts",
    response_model=schemas.HopUpPartOut,
    status_code=status.HTTP_201_CREATED,
)
def create_part(
    model_id: int,
    body: schemas.HopUpPartCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return hop_up_repo.create_part(db, model_id, current_user.id, body)


@router.get(
    "/models/{model_id}/hop-up-parts/{part_id}", response_model=schemas.HopUpPartOut
)
def get_part(
    model_id: int,
    part_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return hop_up_repo.get_part(db, model_id, part_id, current_user.id)


@router.put(
    "/models/{model_id}/hop-up-parts/{part_id}", response_model=schemas.HopUpPartOut
)
def update_part(
    model_id: int,
    part_id: int,
    body: schemas.HopUpPartUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return hop_up_repo.update_part(db, model_id, part_id, current_user.id, body)


@router.delete("/models/{model_id}/hop-up-parts/{part_id}")
def delete_part(
    model_id: int,
    part_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    if not hop_up_repo.delete_part(db, model_id, part_id, current_user.id):
        raise NotFoundError("Hop-up part not found", code="part_not_found")
    return {"ok": True}
