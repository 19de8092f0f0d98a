import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="tamtrack-uploads-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tamtrack import database  # noqa: E402
from tamtrack.main import app  # noqa: E402
from tamtrack.repositories import user_repo  # noqa: E402
from tamtrack.security import create_access_token, get_password_hash  # noqa: E402
from tamtrack.services.mail_service import (  # noqa: E402
    LoggingEmailSender,
    get_email_sender,
)
from tamtrack.services.storage_service import (  # noqa: E402
    LocalFileStorage,
    get_file_storage,
)

PASSWORD = "password123"


class RecordingEmailSender(LoggingEmailSender):
    """Keeps every message so tests can inspect what was sent."""

    def __init__(self):
        self.sent = []

    def send(self, recipient, template, data):
        super().send(recipient, template, data)
        self.sent.append((recipient, template, dict(data)))


@pytest.fixture
def engine():
    """Fresh in-memory database per test, foreign keys enforced."""
    engine = database.build_engine("sqlite://", poolclass=StaticPool)
    database.init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(root=str(tmp_path / "uploads"), url_prefix="/uploads")


@pytest.fixture
def mailer():
    return RecordingEmailSender()


@pytest.fixture
def client(db_session, storage, mailer):
    """Переопределяет зависимости get_db, хранилище файлов и почту."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage
    app.dependency_overrides[get_email_sender] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(db_session):
    """Create an account directly in the store and return (user, headers)."""

    def _make(email, display_name="Collector", is_admin=False, share_preference=None):
        user = user_repo.create_user(
            db_session,
            {"email": email, "display_name": display_name},
            get_password_hash(PASSWORD),
            is_admin=is_admin,
        )
        if share_preference:
            user = user_repo.update_share_preference(
                db_session, user.id, share_preference
            )
        token = create_access_token({"sub": str(user.id)})
        return user, auth_headers(token)

    return _make


@pytest.fixture
def model_payload():
    def _payload(**overrides):
        data = {"name": "Grasshopper", "item_number": "58043", "chassis": "Grasshopper"}
        data.update(overrides)
        return data

    return _payload
