"""
API package for the portal backend.

This package aggregates all API routers to be included in the FastAPI
application. Routes live under ``/api``; the notification socket is
served at ``/ws``.
"""

from fastapi import APIRouter, Depends
from .v1.admin import router as admin_router
from .v1.auth import router as auth_router
from .v1.health import router as health_router
from .v1.images import router as images_router
from .v1.ws import router as ws_router
from ..core.auth import ROLE_ADMIN, require_roles

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(health_router)
api_router.include_router(images_router)
api_router.include_router(admin_router, dependencies=[Depends(require_roles(ROLE_ADMIN))])
api_router.include_router(ws_router)
