import logging
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import database, errors
from .config import settings
from .limiter import limiter
from .routers import (
    admin,
    auth,
    build_logs,
    community,
    electronics,
    feedback,
    hop_ups,
    models,
    photos,
    users,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_TYPE_BASE = "https://tamtrack.example.com/errors"

app = FastAPI(title="TamTrack", version="0.1.0")

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STATUS_BY_ERROR = (
    (errors.ValidationError, 422),
    (errors.NotFoundError, 404),
    (errors.ConflictError, 409),
    (errors.QuotaExceededError, 403),
    (errors.PermissionDeniedError, 403),
    (errors.TransientStoreError, 503),
)

TITLE_MAP = {
    "validation_error": "Validation error",
    "not_found": "Resource not found",
    "model_not_found": "Model not found",
    "photo_not_found": "Photo not found",
    "entry_not_found": "Build log entry not found",
    "part_not_found": "Hop-up part not found",
    "shared_model_not_found": "Shared model not found",
    "comment_not_found": "Comment not found",
    "feedback_not_found": "Feedback post not found",
    "vote_not_found": "Vote not found",
    "user_not_found": "User not found",
    "electronic_not_found": "Electronics item not found",
    "model_electronics_not_found": "No electronics assigned",
    "field_option_not_found": "Field option not found",
    "conflict": "Conflict",
    "email_exists": "Email already registered",
    "slug_taken": "Public link already in use",
    "duplicate_vote": "Duplicate vote",
    "field_option_exists": "Field option already exists",
    "model_limit_reached": "Model limit reached",
    "forbidden": "Forbidden",
    "store_unavailable": "Service unavailable",
}

STATUS_TO_TITLE = {
    401: "Unauthorized",
    403: "Forbidden",
    404: "Resource not found",
    405: "Method not allowed",
    422: "Validation error",
    429: "Too Many Requests",
}


def problem(status: int, code: str, title: str, detail: str, **extra) -> JSONResponse:
    """Build an RFC 7807 response with a fresh correlation id."""
    body = {
        "type": f"{ERROR_TYPE_BASE}/{code}",
        "title": title,
        "status": status,
        "detail": detail,
        "correlation_id": str(uuid4()),
    }
    body.update(extra)
    return JSONResponse(status_code=status, content=body)


@app.exception_handler(errors.TamTrackError)
async def tamtrack_error_handler(request: Request, exc: errors.TamTrackError):
    status = next(
        (code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 400
    )
    title = TITLE_MAP.get(exc.code, "Request error")
    if isinstance(exc, errors.TransientStoreError):
        logger.error("store unavailable on %s %s", request.method, request.url.path)
        return problem(
            status, exc.code, title, "The service is temporarily unavailable, try again"
        )
    if isinstance(exc, errors.ValidationError):
        return problem(status, exc.code, title, exc.message, errors=exc.errors)
    return problem(status, exc.code, title, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    field_errors = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    return problem(
        422,
        "validation_error",
        "Validation error",
        "Validation error",
        errors=field_errors,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    title = STATUS_TO_TITLE.get(exc.status_code, "HTTP error")
    detail = str(exc.detail) if exc.detail else title
    response = problem(exc.status_code, f"http_{exc.status_code}", title, detail)
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


@app.on_event("startup")
def startup_event():
    database.init_db()


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(models.router)
app.include_router(photos.router)
app.include_router(build_logs.router)
app.include_router(hop_ups.router)
app.include_router(electronics.router)
app.include_router(community.router)
app.include_router(feedback.router)
app.include_router(admin.router)

app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)
