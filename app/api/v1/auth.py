"""
Login endpoint for the portal.

Employees sign in with their employee id and the shared portal password.
A user row is created on the first successful login.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ...core.auth import ROLE_USER
from ...core.errors import AuthError, ValidationError
from ...core.security import create_access_token, verify_shared_password
from ...schemas.auth import LoginIn, UserOut
from ...services.record_store import RecordStore
from ..deps import get_store


router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("auth")


@router.post("/login")
def login(payload: LoginIn, store: RecordStore = Depends(get_store)) -> dict:
    employee_id = str(payload.employee_id).strip() if payload.employee_id is not None else ""
    if not employee_id or not payload.password:
        raise ValidationError("Employee ID and password are required")
    if not verify_shared_password(payload.password):
        logger.info("Login rejected: bad password employee_id=%s", employee_id)
        raise AuthError("Invalid password")

    employee = store.get_employee_by_employee_id(employee_id)
    if employee is None:
        logger.info("Login rejected: unknown employee employee_id=%s", employee_id)
        raise AuthError("Employee ID not found. Please contact your administrator.")

    user, created = store.get_or_create_user(employee_id=employee_id, display_name=employee.display_name, role=ROLE_USER)
    if created:
        logger.info("User created on first login employee_id=%s user_id=%s", employee_id, user.id)

    token = create_access_token(sub=user.employee_id, role=user.role, user_id=user.id)
    return {
        "message": "Login successful",
        "user": UserOut.model_validate(user).model_dump(by_alias=True),
        "access_token": token,
        "token_type": "bearer",
    }
