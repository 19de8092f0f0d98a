from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..errors import NotFoundError
from ..repositories import electronics_repo
from ..security import get_current_user

router = APIRouter(prefix="/api", tags=["electronics"])


@router.get("/electronics", response_model=List[schemas.ElectronicOut])
def list_electronics(
    kind: Optional[schemas.ElectronicKind] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return electronics_repo.list_electronics(db, current_user.id, kind)


@router.post(
    "/electronics",
    response_model=schemas.ElectronicOut,
    status_code=status.HTTP_201_CREATED,
)
def create_electronic(
    body: schemas.ElectronicCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return electronics_repo.create_electronic(db, current_user.id, body)


@router.get("/electronics/{item_id}", response_model=schemas.ElectronicOut)
def get_electronic(
    item_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return electronics_repo.get_electronic(db, item_id, current_user.id)


@router.put("/electronics/{item_id}", response_model=schemas.ElectronicOut)
def update_electronic(
    item_id: int,
    body: schemas.ElectronicUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return electronics_repo.update_electronic(db, item_id, current_user.id, body)


@router.delete("/electronics/{item_id}")
def delete_electronic(
    item_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    if not electronics_repo.delete_electronic(db, item_id, current_user.id):
        raise NotFoundError("Electronics item not found", code="electronic_not_found")
    return {"ok": True}


@router.get(
    "/models/{model_id}/electronics", response_model=schemas.ModelElectronicsOut
)
def get_model_electronics(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return electronics_repo.get_model_electronics(db, model_id, current_user.id)


@router.put(
    "/models/{model_id}/electronics", response_model=schemas.ModelElectronicsOut
)
def upsert_model_electronics(
    model_id: int,
    body: schemas.ModelElectronicsUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return electronics_repo.upsert_model_electronics(
        db, model_id, current_user.id, body
    )


@router.delete("/models/{model_id}/electronics")
def delete_model_electronics(
    model_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    if not electronics_repo.delete_model_electronics(db, model_id, current_user.id):
        raise NotFoundError(
            "No electronics assigned to this model", code="model_electronics_not_found"
        )
    return {"ok": True}
