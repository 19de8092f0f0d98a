import io

import pytest

from tamtrack import errors
from tamtrack.services.billing_service import (
    MODELS_PER_PACK,
    VerifiedPayment,
    apply_model_pack_purchase,
)
from tamtrack.services.mail_service import LoggingEmailSender
from tamtrack.services.storage_service import (
    LocalFileStorage,
    read_upload,
    remove_files,
)


class FakeVerifier:
    def __init__(self, payments):
        self.payments = payments
        self.calls = []

    def verify(self, reference):
        self.calls.append(reference)
        return self.payments.get(reference)


def test_verified_purchase_raises_quota(db_session, make_user):
    user, _ = make_user("buyer@example.com")
    verifier = FakeVerifier({"pi_123": VerifiedPayment("pi_123", user.id)})

    updated = apply_model_pack_purchase(db_session, user.id, "pi_123", verifier)

    assert updated.model_limit == 2 + MODELS_PER_PACK
    assert updated.manually_granted_models == 0
    assert verifier.calls == ["pi_123"]


def test_unverified_purchase_is_rejected(db_session, make_user):
    user, _ = make_user("cheater@example.com")
    verifier = FakeVerifier({})

    with pytest.raises(errors.ValidationError) as exc_info:
        apply_model_pack_purchase(db_session, user.id, "pi_fake", verifier)
    assert exc_info.value.errors[0]["loc"] == ["reference"]
    db_session.refresh(user)
    assert user.model_limit == 2


def test_purchase_for_another_user_is_rejected(db_session, make_user):
    buyer, _ = make_user("buyer2@example.com")
    other, _ = make_user("other2@example.com")
    verifier = FakeVerifier({"pi_9": VerifiedPayment("pi_9", buyer.id)})

    with pytest.raises(errors.ValidationError):
        apply_model_pack_purchase(db_session, other.id, "pi_9", verifier)


def test_local_storage_save_and_delete(tmp_path):
    storage = LocalFileStorage(root=str(tmp_path), url_prefix="/media/", max_bytes=1024)
    stored = storage.save(b"\x89PNG", "Photo.PNG", "image/png")

    assert stored.filename.endswith(".png")
    assert stored.url == f"/media/{stored.filename}"
    assert (tmp_path / stored.filename).read_bytes() == b"\x89PNG"

    storage.delete(stored.filename)
    assert not (tmp_path / stored.filename).exists()
    # повторное удаление не падает
    storage.delete(stored.filename)


@pytest.mark.parametrize(
    "data, filename, content_type",
    [
        (b"text", "notes.txt", "text/plain"),
        (b"\xff\xd8", "photo.jpg", "application/octet-stream"),
        (b"", "empty.jpg", "image/jpeg"),
        (b"x" * 2048, "huge.jpg", "image/jpeg"),
    ],
)
def test_local_storage_rejects_bad_uploads(tmp_path, data, filename, content_type):
    storage = LocalFileStorage(root=str(tmp_path / "up"), max_bytes=1024)
    with pytest.raises(errors.ValidationError):
        storage.save(data, filename, content_type)
    assert not (tmp_path / "up").exists()


def test_remove_files_logs_failures(caplog):
    class BrokenStorage:
        def delete(self, filename):
            raise PermissionError("read-only")

    remove_files(BrokenStorage(), ["a.jpg"])
    assert "could not remove upload a.jpg" in caplog.text


def test_logging_email_sender(caplog):
    sender = LoggingEmailSender()
    with caplog.at_level("INFO"):
        sender.send("someone@example.com", "welcome", {"display_name": "Someone"})
    assert "Welcome to TamTrack" in caplog.text
    assert "someone@example.com" in caplog.text
    # отправитель ничего не накапливает между письмами
    assert not hasattr(sender, "sent")


class CountingStream:
    def __init__(self, data):
        self.stream = io.BytesIO(data)
        self.requested = []

    def read(self, size=-1):
        self.requested.append(size)
        return self.stream.read(size)


def test_read_upload_stops_past_the_limit():
    stream = CountingStream(b"x" * 1000)
    with pytest.raises(errors.ValidationError):
        read_upload(stream, 10)
    assert stream.requested == [11]

    assert read_upload(io.BytesIO(b"abc"), 3) == b"abc"
