"""
Bearer-token auth dependencies and role checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException

from .config import auth_disabled
from .security import TokenError, decode_access_token


ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = {ROLE_ADMIN, ROLE_USER}


@dataclass
class UserContext:
    role: str
    user_id: Optional[str] = None
    employee_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def get_current_user(authorization: Optional[str] = Header(None)) -> UserContext:
    if auth_disabled():
        return UserContext(role=ROLE_ADMIN)
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = decode_access_token(token)
    except TokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    role = str(claims.get("role") or "").strip().lower()
    employee_id = str(claims.get("sub") or "").strip() or None
    user_id = str(claims.get("user_id") or "").strip() or None
    if role not in ROLES or not employee_id or not user_id:
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return UserContext(role=role, user_id=user_id, employee_id=employee_id)


def require_roles(*roles: str):
    def _dep(user: UserContext = Depends(get_current_user)):
        allowed = {r.strip().lower() for r in roles if r and r.strip()}
        if allowed and user.role not in allowed:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _dep


def ensure_owner_or_admin(user: UserContext, owner_user_id: str) -> None:
    if user.is_admin:
        return
    if not user.user_id or user.user_id != owner_user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
