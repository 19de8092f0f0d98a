import logging

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import settings
from .errors import ConflictError, TransientStoreError

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(url: str, **kwargs):
    """Create an engine; SQLite connections get foreign key enforcement."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def init_db(bind=None) -> None:
    from . import models  # noqa: F401  registers the tables

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(
    db: Session,
    conflict_message: str = "Resource already exists",
    conflict_code: str = "conflict",
):
    """Commit the session, translating store errors into the error taxonomy.

    On any failure the session is rolled back, so the caller can assume no
    part of the write was applied.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("integrity error on commit: %s", exc.orig)
        raise ConflictError(conflict_message, code=conflict_code) from exc
    except (OperationalError, DBAPIError) as exc:
        db.rollback()
        logger.error("store failure on commit: %s", exc)
        raise TransientStoreError("Store temporarily unavailable") from exc


def retry_transient(db: Session, func, *args, **kwargs):
    """Run a read, retrying once if the store reports a transient failure."""
    try:
        return func(db, *args, **kwargs)
    except (TransientStoreError, OperationalError):
        logger.warning("transient store error in %s, retrying once", func.__name__)
        db.rollback()
    try:
        return func(db, *args, **kwargs)
    except OperationalError as exc:
        db.rollback()
        logger.error("store failure on read: %s", exc)
        raise TransientStoreError("Store temporarily unavailable") from exc
