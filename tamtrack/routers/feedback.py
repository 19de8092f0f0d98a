from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import database, models, schemas
from ..errors import NotFoundError
from ..repositories import feedback_repo
from ..security import get_current_user, get_optional_user, require_admin

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


@router.get("/top", response_model=List[schemas.FeedbackPostOut])
def top_posts(db: Session = Depends(database.get_db)):
    return feedback_repo.top_posts(db)


@router.get("", response_model=List[schemas.FeedbackPostOut])
def list_posts(
    category: Optional[schemas.FeedbackCategory] = None,
    status: Optional[schemas.FeedbackStatus] = None,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return feedback_repo.list_posts(
        db, viewer.id if viewer else None, category=category, status=status
    )


@router.post(
    "", response_model=schemas.FeedbackPostOut, status_code=status.HTTP_201_CREATED
)
def create_post(
    body: schemas.FeedbackPostCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return feedback_repo.create_post(db, current_user.id, body)


@router.get("/{post_id}", response_model=schemas.FeedbackPostOut)
def get_post(
    post_id: int,
    viewer: Optional[models.User] = Depends(get_optional_user),
    db: Session = Depends(database.get_db),
):
    return feedback_repo.get_post(db, post_id, viewer.id if viewer else None)


@router.delete("/{post_id}")
def delete_post(
    post_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    if not feedback_repo.delete_post(db, post_id, current_user.id):
        raise NotFoundError("Feedback post not found", code="feedback_not_found")
    return {"ok": True}


@router.post("/{post_id}/vote", response_model=schemas.VoteOut)
def vote_post(
    post_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    post = feedback_repo.vote(db, post_id, current_user.id)
    return {"message": "Vote registered", "post_id": post.id, "user_id": current_user.id}


@router.delete("/{post_id}/vote", response_model=schemas.VoteOut)
def unvote_post(
    post_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    if not feedback_repo.unvote(db, post_id, current_user.id):
        raise NotFoundError("Vote not found", code="vote_not_found")
    return {"message": "Vote removed", "post_id": post_id, "user_id": current_user.id}


@router.patch("/{post_id}/status", response_model=schemas.FeedbackPostOut)
def update_status(
    post_id: int,
    body: schemas.FeedbackStatusUpdate,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return feedback_repo.update_post_status(db, post_id, body.status)
