"""
Image request lifecycle: ``pending`` on upload, ``completed`` once an
admin attaches the edited image.

This module is the only writer of ``status`` and ``completed_at``.
Notifications are emitted after the store commit; a failing notifier is
logged and never fails the write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from ..core.config import ALLOWED_IMAGE_TYPES
from ..core.errors import AlreadyCompleted, NotFound, UploadRejected, ValidationError, log_exception
from ..core.request_limits import max_upload_bytes
from ..models.image_request import ImageRequest, RequestStatus
from .notifications import EVENT_EDITED, EVENT_NEW_UPLOAD, Notifier, NullNotifier, build_event
from .record_store import RecordStore
from .storage import StorageProvider


logger = logging.getLogger("lifecycle")


@dataclass
class UploadedAsset:
    file_name: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class Submitter:
    user_id: str
    employee_id: str
    display_name: str


def validate_asset(asset: UploadedAsset, *, max_bytes: Optional[int] = None) -> UploadedAsset:
    """Check size and MIME policy; return the asset with its MIME type normalized."""
    limit = max_bytes or max_upload_bytes()
    if not asset.data:
        raise UploadRejected("No image file provided")
    if asset.size > limit:
        raise UploadRejected(f"File too large. Maximum size is {limit} bytes", status_code=413)
    content_type = (asset.content_type or "").strip().lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise UploadRejected("Invalid file type. Only JPEG, PNG, and WebP images are allowed.")
    return replace(asset, content_type=content_type)


def _validate_submitter(submitter: Submitter) -> Submitter:
    cleaned = Submitter(
        user_id=(submitter.user_id or "").strip(),
        employee_id=(submitter.employee_id or "").strip(),
        display_name=(submitter.display_name or "").strip(),
    )
    if not cleaned.user_id or not cleaned.employee_id or not cleaned.display_name:
        raise ValidationError("User information is required")
    return cleaned


class ImageRequestLifecycle:
    def __init__(
        self,
        store: RecordStore,
        *,
        storage: Optional[StorageProvider] = None,
        notifier: Optional[Notifier] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        self.store = store
        self.storage = storage
        self.notifier = notifier or NullNotifier()
        self.max_bytes = max_bytes

    def _external_copy(self, asset: UploadedAsset, *, folder: str, request_hint: str) -> Optional[str]:
        if self.storage is None:
            return None
        try:
            result = self.storage.save_bytes(
                data=asset.data,
                content_type=asset.content_type,
                filename_hint=asset.file_name,
                folder=folder,
            )
        except Exception as exc:
            log_exception(
                logger,
                "Blob upload failed; keeping inline content only",
                extra={"folder": folder, "request": request_hint},
                exc=exc,
            )
            return None
        return result.reference

    def _emit(self, kind: str, record: ImageRequest) -> None:
        try:
            self.notifier.publish(build_event(kind, record))
        except Exception as exc:
            log_exception(logger, "Notification failed", extra={"type": kind, "request_id": record.id}, exc=exc)

    def create(self, asset: UploadedAsset, submitter: Submitter) -> ImageRequest:
        asset = validate_asset(asset, max_bytes=self.max_bytes)
        who = _validate_submitter(submitter)
        external = self._external_copy(asset, folder="original", request_hint=who.user_id)
        record = self.store.create_image_request(
            user_id=who.user_id,
            employee_id=who.employee_id,
            display_name=who.display_name,
            original_file_name=asset.file_name or "image",
            original_content_type=asset.content_type,
            original_file_path=external,
            original_file_content=asset.data,
            status=RequestStatus.pending.value,
            uploaded_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Image request created request_id=%s user_id=%s size=%s external=%s",
            record.id,
            record.user_id,
            asset.size,
            bool(external),
        )
        self._emit(EVENT_NEW_UPLOAD, record)
        return record

    def attach_edited(self, request_id: str, asset: UploadedAsset) -> ImageRequest:
        existing = self.store.get_image_request(request_id)
        if existing is None:
            raise NotFound("Image request not found")
        asset = validate_asset(asset, max_bytes=self.max_bytes)
        if existing.status != RequestStatus.pending.value:
            logger.info("Rejecting re-completion request_id=%s", request_id)
            raise AlreadyCompleted()
        external = self._external_copy(asset, folder="edited", request_hint=request_id)
        try:
            record = self.store.update_image_request(
                request_id,
                {
                    "edited_file_name": asset.file_name or "edited-image",
                    "edited_content_type": asset.content_type,
                    "edited_file_path": external,
                    "edited_file_content": asset.data,
                    "status": RequestStatus.completed.value,
                    "completed_at": datetime.now(timezone.utc),
                },
                expected_status=RequestStatus.pending.value,
            )
        except AlreadyCompleted:
            if external:
                logger.warning("Orphaned blob copy after lost edit race request_id=%s reference=%s", request_id, external)
            raise
        if record is None:
            raise NotFound("Image request not found")
        logger.info("Image request completed request_id=%s size=%s external=%s", record.id, asset.size, bool(external))
        self._emit(EVENT_EDITED, record)
        return record
