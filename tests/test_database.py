import pytest
from sqlalchemy.exc import OperationalError

from tamtrack import database, errors, models
from tamtrack.database import commit_or_raise, retry_transient


def test_commit_or_raise_maps_integrity_error(db_session, make_user):
    make_user("taken@example.com")
    db_session.add(models.User(email="taken@example.com", display_name="Twin"))
    with pytest.raises(errors.ConflictError) as exc_info:
        commit_or_raise(db_session, "Email already registered", "email_exists")
    assert exc_info.value.code == "email_exists"
    # после отката сессия снова пригодна
    assert db_session.query(models.User).count() == 1


def test_foreign_keys_enforced(db_session):
    db_session.add(models.Model(owner_id=4242, name="Orphan", item_number="0"))
    with pytest.raises(errors.ConflictError):
        commit_or_raise(db_session)


def test_commit_or_raise_maps_operational_error(db_session, monkeypatch):
    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "commit", broken_commit)
    with pytest.raises(errors.TransientStoreError):
        commit_or_raise(db_session)


def test_retry_transient_retries_once(db_session):
    calls = []

    def flaky(db, value):
        calls.append(value)
        if len(calls) == 1:
            raise OperationalError("SELECT", {}, Exception("connection reset"))
        return value * 2

    assert retry_transient(db_session, flaky, 21) == 42
    assert calls == [21, 21]


def test_retry_transient_gives_up_after_second_failure(db_session):
    def down(db):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    with pytest.raises(errors.TransientStoreError):
        retry_transient(db_session, down)


def test_store_failure_maps_to_503(client, make_user, monkeypatch):
    from tamtrack.repositories import model_repo

    _, headers = make_user("down@example.com")

    def down(db, owner_id):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(model_repo, "list_models", down)
    response = client.get("/api/models", headers=headers)
    assert response.status_code == 503
    body = response.json()
    assert body["type"].endswith("/store_unavailable")
    assert "connection refused" not in body["detail"]


def test_init_db_creates_tables():
    engine = database.build_engine("sqlite://")
    database.init_db(bind=engine)
    assert "models" in database.Base.metadata.tables
    with engine.connect() as conn:
        assert engine.dialect.has_table(conn, "build_log_photos")
