"""
ORM model for the employee roster.

Rows are imported in bulk (upsert by ``employee_id``) and looked up on
login; the organisational descriptors are carried for exports only.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(256), default="")
    mini_region_name: Mapped[str] = mapped_column(String(256), default="")
    region_name: Mapped[str] = mapped_column(String(256), default="")
    sub_zone_name: Mapped[str] = mapped_column(String(256), default="")
    zone_name: Mapped[str] = mapped_column(String(256), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
