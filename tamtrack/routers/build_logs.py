from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..errors import NotFoundError
from ..repositories import build_log_repo
from ..security import get_current_user

router = APIRouter(prefix="/api", tags=["build-logs"])


@router.get("/build-logs", response_model=List[schemas.BuildLogEntryWithModel])
def list_all_entries(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return build_log_repo.list_all_entries(db, current_user.id)


@router.get(
    "/models/{model_id}/build-logs", response_model=List[schemas.BuildLogEntryOut]
)
def list_entries(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return build_log_repo.list_entries(db, model_id, current_user.id)


@router.post(
    "/models/{model_id}/build-logs",
    response_model=schemas.BuildLogEntryOut,
    status_code=status.HTTP_201_CREATED,
)
def create_entry(
    model_id: int,
    body: schemas.BuildLogEntryCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return build_log_repo.create_entry(db, model_id, current_user.id, body)


@router.get(
    "/models/{model_id}/build-logs/{entry_id}",
    response_model=schemas.BuildLogEntryOut,
)
def get_entry(
    model_id: int,
    entry_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return build_log_repo.get_entry(db, model_id, entry_id, current_user.id)


@router.put(
    "/models/{model_id}/build-logs/{entry_id}",
    response_model=schemas.BuildLogEntryOut,
)
def update_entry(
    model_id: int,
    entry_id: int,
    body: schemas.BuildLogEntryUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return build_log_repo.update_entry(db, model_id, entry_id, current_user.id, body)


@router.post(
    "/models/{model_id}/build-logs/{entry_id}/photos",
    response_model=schemas.BuildLogEntryOut,
)
def link_photos(
    model_id: int,
    entry_id: int,
    body: schemas.EntryPhotoLinks,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return build_log_repo.add_photos_to_entry(
        db, model_id, entry_id, current_user.id, body.photo_ids
    )


@router.delete("/models/{model_id}/build-logs/{entry_id}")
def delete_entry(
    model_id: int,
    entry_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    if not build_log_repo.delete_entry(db, model_id, entry_id, current_user.id):
        raise NotFoundError("Build log entry not found", code="entry_not_found")
    return {"ok": True}
