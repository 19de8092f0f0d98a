"""Read-only views of other collectors' shared models, comments and field options."""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..errors import NotFoundError
from ..repositories import comment_repo, field_option_repo, sharing_repo
from ..security import get_current_user, get_optional_user

router = APIRouter(prefix="/api", tags=["community"])


def _viewer_id(user: Optional[models.User]) -> Optional[int]:
    return user.id if user else None


@router.get("/community/models", response_model=List[schemas.SharedModelOut])
def list_shared_models(
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return sharing_repo.list_shared_models(db, _viewer_id(viewer))


@router.get("/shared/{slug}", response_model=schemas.SharedModelOut)
def get_shared_model(
    slug: str,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return sharing_repo.get_shared_model(db, slug, _viewer_id(viewer))


@router.get("/shared/{slug}/photos", response_model=List[schemas.PhotoOut])
def get_shared_photos(
    slug: str,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return sharing_repo.get_shared_photos(db, slug, _viewer_id(viewer))


@router.get(
    "/shared/{slug}/hop-up-parts", response_model=List[schemas.PublicHopUpPartOut]
)
def get_shared_hop_ups(
    slug: str,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return sharing_repo.get_shared_hop_ups(db, slug, _viewer_id(viewer))


@router.get(
    "/shared/{slug}/build-logs", response_model=List[schemas.BuildLogEntryOut]
)
def get_shared_build_logs(
    slug: str,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return sharing_repo.get_shared_build_logs(db, slug, _viewer_id(viewer))


@router.get(
    "/shared/{slug}/electronics",
    response_model=Optional[schemas.PublicModelElectronicsOut],
)
def get_shared_electronics(
    slug: str,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return sharing_repo.get_shared_electronics(db, slug, _viewer_id(viewer))


@router.get("/shared/{slug}/comments", response_model=List[schemas.CommentOut])
def list_comments(
    slug: str,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return comment_repo.list_comments(db, slug, _viewer_id(viewer))


@router.post(
    "/shared/{slug}/comments",
    response_model=schemas.CommentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    slug: str,
    body: schemas.CommentCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return comment_repo.create_comment(db, slug, current_user.id, body)


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    if not comment_repo.delete_comment(db, comment_id, current_user.id):
        raise NotFoundError("Comment not found", code="comment_not_found")
    return {"ok": True}


@router.get("/field-options", response_model=Dict[str, List[str]])
def field_options(db: Session = Depends(database.get_db)):
    """Active dropdown values for model and hop-up part fields."""
    return field_option_repo.active_values(db)
