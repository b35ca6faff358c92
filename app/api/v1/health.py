"""
Health endpoints for the portal backend.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...core.errors import StorageUnavailable
from ...services.record_store import RecordStore
from ..deps import get_store


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def health() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/db")
def health_db(store: RecordStore = Depends(get_store)):
    try:
        store.ping()
    except StorageUnavailable:
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok", "database": "ok"}
