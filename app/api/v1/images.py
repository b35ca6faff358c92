"""
Employee-facing image endpoints: upload, list own requests, download.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse, Response

from ...core.auth import UserContext, ensure_owner_or_admin, get_current_user
from ...core.errors import NotFound, UploadRejected
from ...core.request_limits import enforce_upload_limit, read_upload_bytes_sync
from ...schemas.image_request import CreatedRequestOut, ImageRequestOut
from ...services.content import ExternalAsset, check_side, resolve_download
from ...services.lifecycle import ImageRequestLifecycle, Submitter, UploadedAsset
from ...services.record_store import RecordStore
from ..deps import get_lifecycle, get_store


router = APIRouter(prefix="/api/images", tags=["images"])
logger = logging.getLogger("images")


def read_asset(upload: Optional[UploadFile], *, max_bytes: int, missing_message: str) -> UploadedAsset:
    if upload is None or not upload.filename:
        raise UploadRejected(missing_message)
    data = read_upload_bytes_sync(upload, max_bytes=max_bytes)
    return UploadedAsset(file_name=upload.filename, content_type=upload.content_type, data=data)


def content_disposition(file_name: str) -> str:
    fallback = file_name.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "") or "image"
    if fallback == file_name:
        return f'attachment; filename="{fallback}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"


@router.post("/upload", dependencies=[Depends(enforce_upload_limit)])
def upload_original(
    request: Request,
    image: Optional[UploadFile] = File(None),
    userId: Optional[str] = Form(None),
    employeeId: Optional[str] = Form(None),
    displayName: Optional[str] = Form(None),
    lifecycle: ImageRequestLifecycle = Depends(get_lifecycle),
    user: UserContext = Depends(get_current_user),
) -> dict:
    asset = read_asset(
        image,
        max_bytes=request.app.state.settings.max_upload_bytes,
        missing_message="No image file provided",
    )
    if userId:
        ensure_owner_or_admin(user, userId)
    record = lifecycle.create(
        asset,
        Submitter(user_id=userId or "", employee_id=employeeId or "", display_name=displayName or ""),
    )
    return {
        "message": "Image uploaded successfully",
        "request": CreatedRequestOut.model_validate(record).model_dump(mode="json", by_alias=True),
    }


@router.get("/user/{user_id}")
def list_user_requests(
    user_id: str,
    store: RecordStore = Depends(get_store),
    user: UserContext = Depends(get_current_user),
) -> dict:
    ensure_owner_or_admin(user, user_id)
    items = store.list_image_requests_for_user(user_id)
    return {
        "requests": [ImageRequestOut.model_validate(r).model_dump(mode="json", by_alias=True) for r in items],
    }


@router.get("/download-by-id/{request_id}/{side}")
def download_by_id(
    request_id: str,
    side: str,
    request: Request,
    store: RecordStore = Depends(get_store),
    user: UserContext = Depends(get_current_user),
):
    check_side(side)
    record = store.get_image_request(request_id)
    if record is None:
        raise NotFound("Image request not found")
    ensure_owner_or_admin(user, record.user_id)
    resolved = resolve_download(record, side, local_root=request.app.state.settings.blob_root)
    if isinstance(resolved, ExternalAsset):
        logger.info("Redirecting download request_id=%s side=%s", request_id, side)
        return RedirectResponse(resolved.url, status_code=307)
    return Response(
        content=resolved.data,
        media_type=resolved.content_type,
        headers={"Content-Disposition": content_disposition(resolved.file_name)},
    )


@router.get("/download/{side}/{filename}", dependencies=[Depends(get_current_user)])
def download_legacy_file(side: str, filename: str, request: Request):
    """Serve a file written by the local blob host, by side and file name."""
    check_side(side)
    base = (Path(request.app.state.settings.blob_root) / side).resolve()
    target = (base / filename).resolve()
    try:
        target.relative_to(base)
    except ValueError:
        raise NotFound("File not found. Please use the new download endpoint with request ID.")
    if not target.is_file():
        raise NotFound("File not found. Please use the new download endpoint with request ID.")
    return Response(
        content=target.read_bytes(),
        media_type=mimetypes.guess_type(target.name)[0] or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(target.name)},
    )
