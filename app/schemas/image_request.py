"""
Pydantic schemas for image requests.

Field names are snake_case in Python and camelCase on the wire; dump
with ``by_alias=True``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class ImageRequestOut(_CamelModel):
    """List/read model. Binary content is never part of it."""

    id: str
    user_id: str
    employee_id: str
    display_name: str
    original_file_name: str
    original_file_path: Optional[str] = None
    edited_file_name: Optional[str] = None
    edited_file_path: Optional[str] = None
    status: str
    uploaded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("original_file_path", "edited_file_path")
    @classmethod
    def _drop_data_uri(cls, value: Optional[str]) -> Optional[str]:
        if value and value.startswith("data:"):
            return None
        return value

    @field_validator("uploaded_at", "completed_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class CreatedRequestOut(_CamelModel):
    id: str
    status: str
    uploaded_at: Optional[datetime] = None

    @field_validator("uploaded_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class CompletedRequestOut(_CamelModel):
    id: str
    status: str
    completed_at: Optional[datetime] = None

    @field_validator("completed_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


def request_summary(record) -> dict:
    return ImageRequestOut.model_validate(record).model_dump(mode="json", by_alias=True)
