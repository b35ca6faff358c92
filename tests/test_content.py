import base64

import pytest

from app.core.errors import ContentNotAvailable, ContentNotInline, REUPLOAD_MESSAGE, ValidationError
from app.models.image_request import ImageRequest
from app.services.content import (
    AbsentAsset,
    ExternalAsset,
    InlineAsset,
    ResolvedContent,
    classify_asset,
    resolve_download,
)


def _record(**fields) -> ImageRequest:
    base = dict(
        id="req-1",
        user_id="u1",
        employee_id="E1",
        display_name="Emp",
        original_file_name="photo.png",
        status="pending",
    )
    base.update(fields)
    return ImageRequest(**base)


def test_inline_wins_over_external_reference():
    record = _record(
        original_file_content=b"abc",
        original_content_type="image/png",
        original_file_path="https://cdn.example.com/photo.png",
    )
    asset = classify_asset(record, "original")
    assert asset == InlineAsset(data=b"abc", content_type="image/png")


def test_inline_without_type_falls_back_to_octet_stream():
    asset = classify_asset(_record(original_file_content=b"abc"), "original")
    assert asset.content_type == "application/octet-stream"


def test_data_uri_is_decoded_inline():
    payload = base64.b64encode(b"\x89PNG").decode("ascii")
    record = _record(original_file_path=f"data:image/png;base64,{payload}")
    asset = classify_asset(record, "original")
    assert asset == InlineAsset(data=b"\x89PNG", content_type="image/png")


def test_external_and_absent_classification():
    assert classify_asset(_record(original_file_path="https://x/y.png"), "original") == ExternalAsset("https://x/y.png")
    assert isinstance(classify_asset(_record(), "edited"), AbsentAsset)


def test_unknown_side_rejected():
    with pytest.raises(ValidationError):
        classify_asset(_record(), "thumbnail")


def test_resolve_inline_uses_record_file_name():
    record = _record(edited_file_content=b"edited", edited_content_type="image/webp")
    resolved = resolve_download(record, "edited")
    assert resolved == ResolvedContent(data=b"edited", content_type="image/webp", file_name="edited-image")


def test_resolve_external_returns_reference_or_raises_when_strict():
    record = _record(original_file_path="https://cdn.example.com/photo.png")
    assert resolve_download(record, "original") == ExternalAsset("https://cdn.example.com/photo.png")
    with pytest.raises(ContentNotInline):
        resolve_download(record, "original", strict=True)


def test_legacy_record_without_content_needs_reupload():
    record = _record(original_file_path="uploads/original/1700000000-photo.png")
    with pytest.raises(ContentNotAvailable) as exc_info:
        resolve_download(record, "original")
    assert exc_info.value.message == REUPLOAD_MESSAGE


def test_local_file_under_blob_root_is_served(tmp_path):
    target = tmp_path / "original" / "abc.png"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"local-bytes")
    record = _record(original_file_path=str(target), original_content_type="image/png")

    resolved = resolve_download(record, "original", local_root=tmp_path)
    assert resolved.data == b"local-bytes"
    assert resolved.content_type == "image/png"


def test_local_file_outside_blob_root_is_not_served(tmp_path):
    outside = tmp_path / "secret.png"
    outside.write_bytes(b"nope")
    root = tmp_path / "blobs"
    root.mkdir()
    record = _record(original_file_path=str(outside))
    with pytest.raises(ContentNotAvailable):
        resolve_download(record, "original", local_root=root)
