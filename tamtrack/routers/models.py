from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..database import retry_transient
from ..errors import NotFoundError
from ..repositories import model_repo, stats_repo
from ..security import get_current_user
from ..services.storage_service import FileStorage, get_file_storage, remove_files

router = APIRouter(prefix="/api", tags=["models"])


@router.get("/models", response_model=List[schemas.ModelListItem])
def list_models(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return retry_transient(db, model_repo.list_models, current_user.id)


@router.post(
    "/models", response_model=schemas.ModelDetail, status_code=status.HTTP_201_CREATED
)
def create_model(
    body: schemas.ModelIn,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    model_repo.check_model_quota(db, current_user.id)
    model = model_repo.create_model(
        db, schemas.ModelCreate(**body.model_dump(), owner_id=current_user.id)
    )
    return model_repo.get_model(db, model.id, current_user.id)


@router.get("/models/{model_id}", response_model=schemas.ModelDetail)
def get_model(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return retry_transient(db, model_repo.get_model, model_id, current_user.id)


@router.put("/models/{model_id}", response_model=schemas.ModelDetail)
def update_model(
    model_id: int,
    body: schemas.ModelUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    model_repo.update_model(db, model_id, current_user.id, body)
    return model_repo.get_model(db, model_id, current_user.id)


@router.delete("/models/{model_id}")
def delete_model(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    filenames = model_repo.photo_filenames(db, model_id, current_user.id)
    if not model_repo.delete_model(db, model_id, current_user.id):
        raise NotFoundError("Model not found", code="model_not_found")
    remove_files(storage, filenames)
    return {"ok": True}


@router.get("/stats", response_model=schemas.CollectionStats)
def collection_stats(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return retry_transient(db, stats_repo.aggregate_stats, current_user.id)
