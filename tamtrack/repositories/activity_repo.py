import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from .. import schemas
from ..database import commit_or_raise
from ..errors import TamTrackError
from ..models import AdminAuditLog, User, UserActivity

logger = logging.getLogger(__name__)

AUDIT_LOG_LIMIT = 100
USER_ACTIVITY_LIMIT = 200


def record_activity(
    db: Session,
    user_id: int,
    activity_type: str,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> None:
    """Append to the user activity log.

    The log is informational, so a failed write is logged and the caller's
    request carries on.
    """
    db.add(
        UserActivity(
            user_id=user_id,
            activity_type=activity_type,
            details=details or {},
            ip_address=ip_address,
            user_agent=(user_agent or "")[:255] or None,
        )
    )
    try:
        commit_or_raise(db)
    except TamTrackError as exc:
        logger.warning("could not record %s for user %s: %s", activity_type, user_id, exc)


def list_user_activity(db: Session) -> List[schemas.UserActivityOut]:
    rows = db.execute(
        select(UserActivity, User.email)
        .outerjoin(User, UserActivity.user_id == User.id)
        .order_by(UserActivity.created_at.desc(), UserActivity.id.desc())
        .limit(USER_ACTIVITY_LIMIT)
    ).all()
    return [
        schemas.UserActivityOut(
            id=activity.id,
            activity_type=activity.activity_type,
            details=activity.details or {},
            ip_address=activity.ip_address,
            user_agent=activity.user_agent,
            user_email=email,
            created_at=activity.created_at,
        )
        for activity, email in rows
    ]


def list_audit_log(db: Session) -> List[schemas.AuditLogOut]:
    admin_user = aliased(User)
    target_user = aliased(User)
    rows = db.execute(
        select(AdminAuditLog, admin_user.email, target_user.email)
        .outerjoin(admin_user, AdminAuditLog.admin_id == admin_user.id)
        .outerjoin(target_user, AdminAuditLog.target_user_id == target_user.id)
        .order_by(AdminAuditLog.created_at.desc(), AdminAuditLog.id.desc())
        .limit(AUDIT_LOG_LIMIT)
    ).all()
    return [
        schemas.AuditLogOut(
            id=entry.id,
            action=entry.action,
            details=entry.details or {},
            admin_email=admin_email,
            target_user_email=target_email,
            created_at=entry.created_at,
        )
        for entry, admin_email, target_email in rows
    ]
