import pytest

from app.core import security


def test_token_round_trip_carries_portal_claims(monkeypatch):
    monkeypatch.setenv("PORTAL_JWT_SECRET", "test-secret-value-long-enough")
    token = security.create_access_token(sub="1001", role="user", user_id="u1")
    claims = security.decode_access_token(token)
    assert (claims["sub"], claims["role"], claims["user_id"]) == ("1001", "user", "u1")
    assert claims["exp"] > claims["iat"]


def test_tampered_token_rejected(monkeypatch):
    monkeypatch.setenv("PORTAL_JWT_SECRET", "test-secret-value-long-enough")
    token = security.create_access_token(sub="1001", role="user", user_id="u1")
    forged = security.create_access_token(sub="1001", role="admin", user_id="u1").split(".")[1]
    header, _, signature = token.split(".")
    with pytest.raises(security.TokenError):
        security.decode_access_token(f"{header}.{forged}.{signature}")


def test_expired_and_malformed_tokens_rejected(monkeypatch):
    monkeypatch.setenv("PORTAL_JWT_SECRET", "test-secret-value-long-enough")
    monkeypatch.setenv("PORTAL_JWT_EXP_MIN", "1")
    token = security.create_access_token(sub="1001", role="user", user_id="u1")
    real_time = security.time.time
    monkeypatch.setattr(security.time, "time", lambda: real_time() + 120)
    with pytest.raises(security.TokenError, match="expired"):
        security.decode_access_token(token)
    with pytest.raises(security.TokenError):
        security.decode_access_token("not-a-token")


def test_prod_requires_jwt_secret(monkeypatch):
    monkeypatch.setenv("PORTAL_ENV", "prod")
    monkeypatch.delenv("PORTAL_JWT_SECRET", raising=False)
    with pytest.raises(security.TokenError):
        security.create_access_token(sub="1001", role="user", user_id="u1")


def test_shared_password_check(monkeypatch):
    monkeypatch.setenv("PORTAL_SHARED_PASSWORD", "open-sesame")
    assert security.verify_shared_password("open-sesame")
    assert not security.verify_shared_password("wrong")
    assert not security.verify_shared_password("")
