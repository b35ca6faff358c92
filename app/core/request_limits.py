"""Request size limits for uploads."""

from __future__ import annotations

import os
from typing import Optional

from fastapi import HTTPException, Request, UploadFile

from .config import DEFAULT_MAX_UPLOAD_BYTES

# Multipart framing and form fields ride on top of the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def max_upload_bytes() -> int:
    raw = os.getenv("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))
    try:
        val = int(raw)
    except Exception:
        val = DEFAULT_MAX_UPLOAD_BYTES
    return max(val, 1024)


def _content_length_too_large(request: Request, max_bytes: int) -> bool:
    length = request.headers.get("content-length")
    if not length:
        return False
    try:
        return int(length) > max_bytes
    except Exception:
        return False


def _configured_limit(request: Request) -> int:
    settings = getattr(request.app.state, "settings", None)
    if settings is not None:
        return settings.max_upload_bytes
    return max_upload_bytes()


def enforce_upload_limit(request: Request) -> None:
    max_bytes = _configured_limit(request) + MULTIPART_OVERHEAD_BYTES
    if _content_length_too_large(request, max_bytes):
        raise HTTPException(status_code=413, detail="Payload too large")


def read_upload_bytes_sync(upload: UploadFile, *, max_bytes: Optional[int] = None) -> bytes:
    limit = max_bytes or max_upload_bytes()
    data = upload.file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(status_code=413, detail="Upload too large")
    return data
