"""
Shared-password login check and HS256 bearer tokens for portal sessions.

Tokens carry the employee id (`sub`), the portal role and the user id.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
import time
from typing import Any

from .config import get_app_env, shared_password


DEV_JWT_SECRET = "dev-jwt-secret-change-me"
DEFAULT_TOKEN_MINUTES = 720
_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenError(ValueError):
    """Raised when a bearer token cannot be trusted."""


def verify_shared_password(password: str) -> bool:
    expected = shared_password()
    if not (expected and password):
        return False
    return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))


def _signing_key() -> bytes:
    configured = (os.getenv("PORTAL_JWT_SECRET") or "").strip()
    if not configured and get_app_env() != "prod":
        configured = DEV_JWT_SECRET
    if not configured:
        raise TokenError("PORTAL_JWT_SECRET is required when auth is enabled")
    return configured.encode("utf-8")


def _token_minutes() -> int:
    raw = os.getenv("PORTAL_JWT_EXP_MIN", str(DEFAULT_TOKEN_MINUTES))
    try:
        return max(1, int(raw))
    except ValueError:
        return DEFAULT_TOKEN_MINUTES


def _segment(obj: dict) -> str:
    raw = json.dumps(obj, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _unsegment(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _sign(key: bytes, signing_input: str) -> bytes:
    return hmac.new(key, signing_input.encode("ascii"), hashlib.sha256).digest()


def create_access_token(*, sub: str, role: str, user_id: str) -> str:
    issued = int(time.time())
    claims = {
        "sub": sub,
        "role": role,
        "user_id": user_id,
        "iat": issued,
        "exp": issued + _token_minutes() * 60,
    }
    signing_input = f"{_segment(_HEADER)}.{_segment(claims)}"
    signature = base64.urlsafe_b64encode(_sign(_signing_key(), signing_input)).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; return the claims."""
    try:
        header_part, claims_part, signature_part = token.split(".")
    except ValueError:
        raise TokenError("Malformed token")
    try:
        signature = _unsegment(signature_part)
        claims = json.loads(_unsegment(claims_part))
    except (ValueError, UnicodeDecodeError):
        raise TokenError("Malformed token")
    if not secrets.compare_digest(_sign(_signing_key(), f"{header_part}.{claims_part}"), signature):
        raise TokenError("Invalid signature")
    if not isinstance(claims, dict):
        raise TokenError("Invalid payload")
    try:
        expires_at = int(claims.get("exp") or 0)
    except (TypeError, ValueError):
        raise TokenError("Invalid exp")
    if expires_at <= 0:
        raise TokenError("Missing exp")
    if time.time() >= expires_at:
        raise TokenError("Token expired")
    return claims
