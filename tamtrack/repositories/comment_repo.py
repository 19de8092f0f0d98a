import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import schemas
from ..database import commit_or_raise
from ..models import ModelComment
from .sharing_repo import get_shared_model

logger = logging.getLogger(__name__)


def list_comments(db: Session, slug: str, viewer_id: Optional[int]) -> List[ModelComment]:
    model = get_shared_model(db, slug, viewer_id)
    stmt = (
        select(ModelComment)
        .where(ModelComment.model_id == model.id)
        .options(selectinload(ModelComment.author))
        .order_by(ModelComment.created_at.desc(), ModelComment.id.desc())
    )
    return list(db.execute(stmt).scalars())


def create_comment(db: Session, slug: str, author_id: int, data) -> ModelComment:
    data = schemas.validate(schemas.CommentCreate, data)
    model = get_shared_model(db, slug, author_id, writable=True)
    comment = ModelComment(model_id=model.id, author_id=author_id, content=data.content)
    db.add(comment)
    commit_or_raise(db)
    db.refresh(comment)
    logger.info("comment %s posted on model %s by user %s", comment.id, model.id, author_id)
    return comment


def delete_comment(db: Session, comment_id: int, author_id: int) -> bool:
    """Only the author may delete a comment."""
    comment = db.execute(
        select(ModelComment).where(
            ModelComment.id == comment_id, ModelComment.author_id == author_id
        )
    ).scalar_one_or_none()
    if comment is None:
        return False
    db.delete(comment)
    commit_or_raise(db)
    return True
