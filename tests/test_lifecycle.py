import logging
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import AlreadyCompleted, NotFound, UploadRejected, ValidationError
from app.models import Base
from app.services.lifecycle import ImageRequestLifecycle, Submitter, UploadedAsset
from app.services.notifications import Notifier
from app.services.record_store import RecordStore
from app.services.storage import StorageProvider, StorageResult


def _make_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.events: list[dict] = []

    def publish(self, event: dict) -> None:
        self.events.append(event)


class FailingNotifier(Notifier):
    def publish(self, event: dict) -> None:
        raise RuntimeError("broker down")


class FakeStorage(StorageProvider):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: list[str] = []

    def save_bytes(self, *, data, content_type, filename_hint, folder):
        if self.fail:
            raise RuntimeError("bucket unreachable")
        self.saved.append(folder)
        return StorageResult(storage_path=f"{folder}/x.png", public_url=f"https://cdn.example.com/{folder}/x.png")


def _asset(data: bytes = b"\x89PNG-data", content_type: str = "image/png", name: str = "cat.png") -> UploadedAsset:
    return UploadedAsset(file_name=name, content_type=content_type, data=data)


SUBMITTER = Submitter(user_id="u-1", employee_id="1001", display_name="Asha")


def test_create_is_pending_and_emits_new_upload():
    notifier = RecordingNotifier()
    lifecycle = ImageRequestLifecycle(RecordStore(_make_session()), notifier=notifier)

    record = lifecycle.create(_asset(), SUBMITTER)

    assert record.status == "pending"
    assert record.completed_at is None
    assert record.edited_file_name is None
    uploaded = record.uploaded_at.replace(tzinfo=timezone.utc) if record.uploaded_at.tzinfo is None else record.uploaded_at
    assert abs(datetime.now(timezone.utc) - uploaded) < timedelta(seconds=30)
    assert [e["type"] for e in notifier.events] == ["new_image_upload"]
    assert notifier.events[0]["data"]["id"] == record.id
    assert "originalFileContent" not in notifier.events[0]["data"]


def test_attach_edited_completes_and_keeps_original():
    notifier = RecordingNotifier()
    lifecycle = ImageRequestLifecycle(RecordStore(_make_session()), notifier=notifier)
    record = lifecycle.create(_asset(), SUBMITTER)

    done = lifecycle.attach_edited(record.id, _asset(data=b"edited", name="cat-nobg.png"))

    assert done.status == "completed"
    assert done.completed_at is not None
    assert done.edited_file_name == "cat-nobg.png"
    assert done.edited_file_content == b"edited"
    assert done.original_file_name == "cat.png"
    assert done.original_file_content == b"\x89PNG-data"
    assert [e["type"] for e in notifier.events] == ["new_image_upload", "image_edited"]
    assert notifier.events[1]["data"]["userId"] == "u-1"


def test_attach_edited_twice_is_rejected():
    lifecycle = ImageRequestLifecycle(RecordStore(_make_session()))
    record = lifecycle.create(_asset(), SUBMITTER)
    lifecycle.attach_edited(record.id, _asset(data=b"first"))

    with pytest.raises(AlreadyCompleted):
        lifecycle.attach_edited(record.id, _asset(data=b"second"))
    assert lifecycle.store.get_image_request(record.id).edited_file_content == b"first"


def test_attach_edited_unknown_id():
    lifecycle = ImageRequestLifecycle(RecordStore(_make_session()))
    with pytest.raises(NotFound):
        lifecycle.attach_edited("does-not-exist", _asset())


@pytest.mark.parametrize(
    "asset,status",
    [
        (UploadedAsset(file_name="x.gif", content_type="image/gif", data=b"GIF89a"), 400),
        (UploadedAsset(file_name="x.png", content_type="image/png", data=b""), 400),
        (UploadedAsset(file_name="x.png", content_type="image/png", data=b"x" * 2048), 413),
    ],
)
def test_rejected_uploads_leave_no_record(asset, status):
    store = RecordStore(_make_session())
    lifecycle = ImageRequestLifecycle(store, max_bytes=1024)
    with pytest.raises(UploadRejected) as exc_info:
        lifecycle.create(asset, SUBMITTER)
    assert exc_info.value.status_code == status
    assert store.list_all_image_requests() == []


def test_missing_submitter_fields_rejected():
    store = RecordStore(_make_session())
    lifecycle = ImageRequestLifecycle(store)
    with pytest.raises(ValidationError):
        lifecycle.create(_asset(), Submitter(user_id="u-1", employee_id="", display_name="Asha"))
    assert store.list_all_image_requests() == []


def test_blob_host_copy_is_recorded_alongside_inline():
    storage = FakeStorage()
    lifecycle = ImageRequestLifecycle(RecordStore(_make_session()), storage=storage)
    record = lifecycle.create(_asset(), SUBMITTER)
    assert record.original_file_path == "https://cdn.example.com/original/x.png"
    assert record.original_file_content == b"\x89PNG-data"
    done = lifecycle.attach_edited(record.id, _asset(data=b"edited"))
    assert done.edited_file_path == "https://cdn.example.com/edited/x.png"
    assert storage.saved == ["original", "edited"]


def test_blob_host_failure_keeps_inline_only(caplog):
    lifecycle = ImageRequestLifecycle(RecordStore(_make_session()), storage=FakeStorage(fail=True))
    caplog.set_level(logging.ERROR)
    record = lifecycle.create(_asset(), SUBMITTER)
    assert record.original_file_path is None
    assert record.original_file_content == b"\x89PNG-data"
    assert any("Blob upload failed" in rec.message for rec in caplog.records)


def test_notifier_failure_does_not_fail_the_write(caplog):
    store = RecordStore(_make_session())
    lifecycle = ImageRequestLifecycle(store, notifier=FailingNotifier())
    caplog.set_level(logging.ERROR)
    record = lifecycle.create(_asset(), SUBMITTER)
    assert store.get_image_request(record.id) is not None
    assert any("Notification failed" in rec.message for rec in caplog.records)


def test_declared_mime_type_is_stored_normalized():
    lifecycle = ImageRequestLifecycle(RecordStore(_make_session()))
    record = lifecycle.create(_asset(content_type=" IMAGE/PNG "), SUBMITTER)
    assert record.original_content_type == "image/png"
    done = lifecycle.attach_edited(record.id, _asset(data=b"edited", content_type="Image/WebP"))
    assert done.edited_content_type == "image/webp"


def test_lost_edit_race_logs_orphaned_blob_copy(monkeypatch, caplog):
    store = RecordStore(_make_session())
    lifecycle = ImageRequestLifecycle(store, storage=FakeStorage())
    record = lifecycle.create(_asset(), SUBMITTER)

    def _completed_meanwhile(*_args, **_kwargs):
        raise AlreadyCompleted()

    monkeypatch.setattr(store, "update_image_request", _completed_meanwhile)
    caplog.set_level(logging.WARNING)
    with pytest.raises(AlreadyCompleted):
        lifecycle.attach_edited(record.id, _asset(data=b"edited"))
    orphan = [rec for rec in caplog.records if "Orphaned blob copy" in rec.getMessage()]
    assert orphan
    assert "https://cdn.example.com/edited/x.png" in orphan[0].getMessage()
