import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .. import database, schemas
from ..config import settings
from ..limiter import limiter
from ..repositories import activity_repo, user_repo
from ..security import create_access_token, get_password_hash, verify_password
from ..services.mail_service import EmailSender, get_email_sender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _record(db: Session, request: Request, user_id: int, activity_type: str, details=None):
    activity_repo.record_activity(
        db,
        user_id,
        activity_type,
        details,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.post(
    "/users", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED
)
@limiter.limit("10/minute")
def register_user(
    request: Request,
    user: schemas.UserCreate,
    db: Session = Depends(database.get_db),
    mailer: EmailSender = Depends(get_email_sender),
):
    new_user = user_repo.create_user(db, user, get_password_hash(user.password))
    _record(db, request, new_user.id, "register", {"email": new_user.email})
    mailer.send(new_user.email, "welcome", {"display_name": new_user.display_name})
    return new_user


@router.post("/auth/login", response_model=schemas.Token)
@limiter.limit("5/minute")
def login_for_access_token(
    request: Request,
    user: schemas.UserLogin,
    db: Session = Depends(database.get_db),
):
    db_user = user_repo.get_user_by_email(db, user.email)
    if not db_user or not verify_password(user.password, db_user.hashed_password):
        logger.info("failed login for %s", user.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    _record(db, request, db_user.id, "login")
    access_token = create_access_token(
        data={"sub": str(db_user.id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"access_token": access_token, "token_type": "bearer"}
