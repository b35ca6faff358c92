"""
Bootstrap seed for the portal admin account.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy.orm import Session

from ..core.auth import ROLE_ADMIN
from .record_store import RecordStore


def seed_admin_user(db: Session) -> None:
    """Ensure the configured admin employee and user exist with the admin role."""
    logger = logging.getLogger("auth-seed")
    employee_id = (os.getenv("PORTAL_ADMIN_EMPLOYEE_ID") or "").strip()
    name = (os.getenv("PORTAL_ADMIN_NAME") or "Administrator").strip()

    if not employee_id:
        logger.warning("Skipping admin seed: PORTAL_ADMIN_EMPLOYEE_ID is empty")
        return

    store = RecordStore(db)
    if store.get_employee_by_employee_id(employee_id) is None:
        store.create_employee(employee_id=employee_id, display_name=name)

    existing = store.get_user_by_employee_id(employee_id)
    if existing:
        if existing.role != ROLE_ADMIN:
            existing.role = ROLE_ADMIN
            db.add(existing)
            db.commit()
            logger.info("Promoted user to admin employee_id=%s", employee_id)
        return

    store.create_user(employee_id=employee_id, display_name=name, role=ROLE_ADMIN)
    logger.info("Seeded admin user employee_id=%s", employee_id)
