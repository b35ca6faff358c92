"""
Error taxonomy and shared error-handling helpers for the portal backend.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .config import get_app_env


REUPLOAD_MESSAGE = (
    "This image was uploaded before the storage system was updated. "
    "The file content is no longer available. Please re-upload the image."
)


class PortalError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    status_code = 400
    default_message = "Invalid input"


class AuthError(PortalError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFound(PortalError):
    status_code = 404
    default_message = "Not found"


class AlreadyCompleted(PortalError):
    status_code = 409
    default_message = "Request is already completed"


class ContentNotAvailable(PortalError):
    status_code = 404
    default_message = REUPLOAD_MESSAGE


class ContentNotInline(PortalError):
    status_code = 409
    default_message = "Image content is hosted externally"


class StorageUnavailable(PortalError):
    status_code = 500
    default_message = "Storage is unavailable"


class UploadRejected(PortalError):
    status_code = 400
    default_message = "Upload rejected"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


def _format_extra(extra: dict | None) -> str:
    if not extra:
        return ""
    parts: list[str] = []
    for key, value in extra.items():
        if value is None:
            continue
        parts.append(f"{key}={value}")
    return f" {' '.join(parts)}" if parts else ""


def log_exception(logger: logging.Logger, msg: str, *, extra: dict | None = None, exc: Exception | None = None) -> None:
    """
    Log an exception with context. Uses logger.exception for stack traces.
    """
    suffix = _format_extra(extra)
    if exc is not None:
        logger.error(f"{msg}{suffix}: {exc}", exc_info=exc)
        return
    logger.exception(f"{msg}{suffix}")


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    logger = logging.getLogger("errors")
    detail = exc.message
    if isinstance(exc, StorageUnavailable):
        log_exception(logger, "Storage failure", extra={"path": request.url.path}, exc=exc)
        if get_app_env() == "prod":
            detail = StorageUnavailable.default_message
    else:
        logger.warning(
            "Request failed path=%s error=%s status=%s message=%s",
            request.url.path,
            type(exc).__name__,
            exc.status_code,
            exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})
