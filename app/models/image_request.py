"""
ORM model for background-removal image requests.

Each side of a request (original / edited) may carry inline content,
an external URL, or both. ``status`` and ``completed_at`` are written
only by the lifecycle service.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class RequestStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"


class ImageRequest(Base):
    __tablename__ = "image_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    employee_id: Mapped[str] = mapped_column(String(64), index=True)
    display_name: Mapped[str] = mapped_column(String(256))

    original_file_name: Mapped[str] = mapped_column(String(512))
    original_content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    original_file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_file_content: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    edited_file_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    edited_content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    edited_file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    edited_file_content: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    status: Mapped[str] = mapped_column(String(16), default=RequestStatus.pending.value, index=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


BINARY_COLUMNS = (ImageRequest.original_file_content, ImageRequest.edited_file_content)
