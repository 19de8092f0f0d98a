from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..config import settings
from ..errors import NotFoundError, TamTrackError
from ..repositories import photo_repo
from ..repositories.ownership import get_owned_model
from ..security import get_current_user
from ..services.storage_service import (
    FileStorage,
    get_file_storage,
    read_upload,
    remove_files,
)

router = APIRouter(prefix="/api/models/{model_id}", tags=["photos"])


@router.get("/photos", response_model=List[schemas.PhotoOut])
def list_photos(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return photo_repo.list_photos(db, model_id, current_user.id)


@router.post(
    "/photos", response_model=schemas.PhotoOut, status_code=status.HTTP_201_CREATED
)
def upload_photo(
    model_id: int,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    is_box_art: bool = Form(False),
    sort_order: int = Form(0),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    get_owned_model(db, model_id, current_user.id)
    data = read_upload(file.file, settings.MAX_UPLOAD_BYTES)
    stored = storage.save(data, file.filename, file.content_type)
    try:
        return photo_repo.create_photo(
            db,
            model_id,
            current_user.id,
            {
                "filename": stored.filename,
                "original_name": file.filename,
                "url": stored.url,
                "caption": caption,
                "is_box_art": is_box_art,
                "sort_order": sort_order,
                "metadata": {"content_type": file.content_type, "size": len(data)},
            },
        )
    except TamTrackError:
        remove_files(storage, [stored.filename])
        raise


@router.put("/photos/{photo_id}", response_model=schemas.PhotoOut)
def update_photo(
    model_id: int,
    photo_id: int,
    body: schemas.PhotoUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return photo_repo.update_photo(db, model_id, photo_id, current_user.id, body)


@router.delete("/photos/{photo_id}")
def delete_photo(
    model_id: int,
    photo_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    photo = photo_repo.get_photo(db, model_id, photo_id, current_user.id)
    filename = photo.filename
    if not photo_repo.delete_photo(db, model_id, photo_id, current_user.id):
        raise NotFoundError("Photo not found", code="photo_not_found")
    remove_files(storage, [filename])
    return {"ok": True}


@router.post("/photos/{photo_id}/box-art", response_model=schemas.PhotoOut)
def set_box_art(
    model_id: int,
    photo_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return photo_repo.set_box_art(db, model_id, photo_id, current_user.id)


@router.delete("/box-art")
def clear_box_art(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    photo_repo.clear_box_art(db, model_id, current_user.id)
    return {"ok": True}
