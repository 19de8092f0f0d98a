import logging
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from .. import schemas
from ..database import commit_or_raise
from ..errors import NotFoundError
from ..models import FeedbackPost, FeedbackVote

logger = logging.getLogger(__name__)


def _mark_votes(db: Session, posts: List[FeedbackPost], viewer_id: Optional[int]):
    voted = set()
    if viewer_id is not None and posts:
        voted = set(
            db.execute(
                select(FeedbackVote.post_id).where(
                    FeedbackVote.user_id == viewer_id,
                    FeedbackVote.post_id.in_([p.id for p in posts]),
                )
            ).scalars()
        )
    for post in posts:
        post.has_voted = post.id in voted
    return posts


def list_posts(
    db: Session,
    viewer_id: Optional[int] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
) -> List[FeedbackPost]:
    stmt = select(FeedbackPost)
    if category:
        stmt = stmt.where(FeedbackPost.category == category)
    if status:
        stmt = stmt.where(FeedbackPost.status == status)
    stmt = stmt.order_by(
        FeedbackPost.vote_count.desc(),
        FeedbackPost.created_at.desc(),
        FeedbackPost.id.desc(),
    )
    return _mark_votes(db, list(db.execute(stmt).scalars()), viewer_id)


def top_posts(db: Session, limit: int = 3) -> List[FeedbackPost]:
    stmt = (
        select(FeedbackPost)
        .order_by(FeedbackPost.vote_count.desc(), FeedbackPost.id)
        .limit(limit)
    )
    return _mark_votes(db, list(db.execute(stmt).scalars()), None)


def get_post(db: Session, post_id: int, viewer_id: Optional[int] = None) -> FeedbackPost:
    post = db.get(FeedbackPost, post_id)
    if post is None:
        raise NotFoundError("Feedback post not found", code="feedback_not_found")
    _mark_votes(db, [post], viewer_id)
    return post


def create_post(db: Session, author_id: int, data) -> FeedbackPost:
    data = schemas.validate(schemas.FeedbackPostCreate, data)
    post = FeedbackPost(author_id=author_id, **data.model_dump())
    db.add(post)
    commit_or_raise(db)
    db.refresh(post)
    logger.info("feedback post %s created by user %s", post.id, author_id)
    return post


def update_post_status(db: Session, post_id: int, status: str) -> FeedbackPost:
    data = schemas.validate(schemas.FeedbackStatusUpdate, {"status": status})
    post = get_post(db, post_id)
    post.status = data.status
    commit_or_raise(db)
    db.refresh(post)
    return post


def delete_post(db: Session, post_id: int, author_id: int) -> bool:
    post = db.execute(
        select(FeedbackPost).where(
            FeedbackPost.id == post_id, FeedbackPost.author_id == author_id
        )
    ).scalar_one_or_none()
    if post is None:
        return False
    db.delete(post)
    commit_or_raise(db)
    return True


def vote(db: Session, post_id: int, user_id: int) -> FeedbackPost:
    """Record one vote; a second vote by the same user hits the unique constraint."""
    post = get_post(db, post_id)
    db.add(FeedbackVote(post_id=post.id, user_id=user_id))
    post.vote_count = FeedbackPost.vote_count + 1
    commit_or_raise(
        db,
        conflict_message="User has already voted for this post",
        conflict_code="duplicate_vote",
    )
    db.refresh(post)
    return post


def unvote(db: Session, post_id: int, user_id: int) -> bool:
    post = get_post(db, post_id)
    removed = db.execute(
        delete(FeedbackVote).where(
            FeedbackVote.post_id == post.id, FeedbackVote.user_id == user_id
        )
    ).rowcount
    if removed:
        db.execute(
            update(FeedbackPost)
            .where(FeedbackPost.id == post.id, FeedbackPost.vote_count > 0)
            .values(vote_count=FeedbackPost.vote_count - 1)
        )
    commit_or_raise(db)
    return bool(removed)
