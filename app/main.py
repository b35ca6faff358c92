"""
Entry point for the background-removal portal backend.

This module creates the FastAPI application, includes all API routers,
and wires the process-wide services (database handle, blob host,
notification transport) onto ``app.state``. Run with:

    uvicorn app.main:app --reload

"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .core.config import Settings, env_true, get_app_env, get_settings, validate_runtime_settings
from .core.db import Database, SessionContext
from .core.errors import PortalError, log_exception, portal_error_handler
from .core.logging_config import setup_logging
from .models import Base
from .scripts.run_migrations import run_migrations_to_head
from .services.auth_seed import seed_admin_user
from .services.notifications import build_notifier
from .services.storage import get_storage_provider


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Background Removal Portal", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ui_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PortalError, portal_error_handler)
    app.include_router(api_router)

    app.state.settings = settings
    app.state.db = Database(settings.database_url)
    app.state.storage = get_storage_provider(settings)
    app.state.notifier = build_notifier(settings)

    @app.on_event("startup")
    def _init_db() -> None:
        logger = logging.getLogger("startup")
        env = get_app_env()
        validate_runtime_settings()
        if settings.auto_create_db:
            try:
                Base.metadata.create_all(bind=app.state.db.engine)
            except Exception as exc:
                log_exception(logger, "DB create_all failed", exc=exc)
                if env == "prod":
                    raise
        if env_true("AUTO_RUN_MIGRATIONS", "false"):
            try:
                run_migrations_to_head(settings.database_url)
            except Exception as exc:
                log_exception(logger, "DB migrations failed", exc=exc)
                if env == "prod":
                    raise
        if env_true("AUTO_SEED_ADMIN_USER", "false"):
            try:
                with SessionContext(app.state.db) as db:
                    seed_admin_user(db)
            except Exception as exc:
                log_exception(logger, "Seed admin user failed", exc=exc)
                if env == "prod":
                    raise
        logger.info(
            "Portal started env=%s transport=%s blob_host=%s",
            env,
            app.state.notifier.transport,
            type(app.state.storage).__name__ if app.state.storage else "none",
        )

    @app.on_event("shutdown")
    def _shutdown() -> None:
        app.state.notifier.close()
        app.state.db.dispose()

    return app


app = create_app()
