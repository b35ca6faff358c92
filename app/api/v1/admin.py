"""
Admin console endpoints: request queue, edited uploads and roster files.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import Response

from ...core.errors import ValidationError
from ...core.pagination import clamp_limit, pagination_meta
from ...core.request_limits import enforce_upload_limit, read_upload_bytes_sync
from ...schemas.image_request import CompletedRequestOut, ImageRequestOut
from ...services import roster
from ...services.lifecycle import ImageRequestLifecycle
from ...services.record_store import RecordStore
from ..deps import get_lifecycle, get_store
from .images import read_asset


router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger("admin")


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _read_import_file(file: Optional[UploadFile], request: Request) -> bytes:
    if file is None or not file.filename:
        raise ValidationError("No file provided")
    return read_upload_bytes_sync(file, max_bytes=request.app.state.settings.max_upload_bytes)


@router.get("/requests")
def list_requests(
    request: Request,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    store: RecordStore = Depends(get_store),
) -> dict:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit is None:
        limit = request.app.state.settings.admin_default_page_size
    elif limit < 1:
        raise ValidationError("limit must be >= 1")
    limit = clamp_limit(limit)
    items, total = store.list_image_requests(page=page, limit=limit)
    return {
        "requests": [ImageRequestOut.model_validate(r).model_dump(mode="json", by_alias=True) for r in items],
        "pagination": pagination_meta(total=total, page=page, limit=limit),
    }


@router.get("/requests/export-file")
def export_requests(store: RecordStore = Depends(get_store)) -> Response:
    return _csv_response(roster.export_requests(store), "image_requests_export.csv")


@router.post("/upload-edited/{request_id}", dependencies=[Depends(enforce_upload_limit)])
def upload_edited(
    request_id: str,
    request: Request,
    editedImage: Optional[UploadFile] = File(None),
    lifecycle: ImageRequestLifecycle = Depends(get_lifecycle),
) -> dict:
    asset = read_asset(
        editedImage,
        max_bytes=request.app.state.settings.max_upload_bytes,
        missing_message="No edited image file provided",
    )
    record = lifecycle.attach_edited(request_id, asset)
    return {
        "message": "Edited image uploaded successfully",
        "request": CompletedRequestOut.model_validate(record).model_dump(mode="json", by_alias=True),
    }


@router.get("/employees/export")
def export_employees(store: RecordStore = Depends(get_store)) -> Response:
    return _csv_response(roster.export_employees(store), "employees.csv")


@router.post("/employees/import", dependencies=[Depends(enforce_upload_limit)])
def import_employees(
    request: Request,
    file: Optional[UploadFile] = File(None),
    store: RecordStore = Depends(get_store),
) -> dict:
    result = roster.import_employees(store, _read_import_file(file, request))
    return {
        "message": "Import completed",
        "importedCount": result.imported,
        "updatedCount": result.updated,
        "skippedCount": result.skipped,
    }


@router.delete("/employees")
def clear_employees(store: RecordStore = Depends(get_store)) -> dict:
    deleted = store.delete_all_employees()
    logger.warning("Employee roster cleared deleted=%s", deleted)
    return {"message": "All employees deleted", "deletedCount": deleted}


@router.get("/users/export")
def export_users(store: RecordStore = Depends(get_store)) -> Response:
    return _csv_response(roster.export_users(store), "users.csv")


@router.post("/users/import", dependencies=[Depends(enforce_upload_limit)])
def import_users(
    request: Request,
    file: Optional[UploadFile] = File(None),
    store: RecordStore = Depends(get_store),
) -> dict:
    result = roster.import_users(store, _read_import_file(file, request))
    return {
        "message": "Import completed",
        "importedCount": result.imported,
        "skippedCount": result.skipped,
    }
