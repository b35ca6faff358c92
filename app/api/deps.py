"""
Shared FastAPI dependencies for the portal routers.
"""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..services.lifecycle import ImageRequestLifecycle
from ..services.record_store import RecordStore


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_lifecycle(request: Request, store: RecordStore = Depends(get_store)) -> ImageRequestLifecycle:
    state = request.app.state
    return ImageRequestLifecycle(
        store,
        storage=state.storage,
        notifier=state.notifier,
        max_bytes=state.settings.max_upload_bytes,
    )
