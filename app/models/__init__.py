"""
SQLAlchemy model base class for the portal backend.

This package defines ORM models for the employee roster, application
users and image requests. All models should inherit from the declarative
`Base` defined here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


from .employee import Employee  # noqa: E402,F401
from .app_user import AppUser  # noqa: E402,F401
from .image_request import ImageRequest, RequestStatus  # noqa: E402,F401

__all__ = [
    "Base",
    "utcnow",

    # Roster
    "Employee",
    "AppUser",

    # Image requests
    "ImageRequest",
    "RequestStatus",
]
