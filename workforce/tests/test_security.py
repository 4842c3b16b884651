"""
Tests for secret hashing and token verification
"""
import bcrypt
import pytest
from jose import jwt

from workforce.core.config import settings
from workforce.core.errors import AuthenticationError
from workforce.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    validate_password,
    verify_password,
)


def test_hash_and_verify_password():
    hashed = hash_password("s3cret-pass")
    assert hashed.startswith("$argon2")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("other-pass", hashed)


def test_verify_accepts_legacy_bcrypt_hash():
    legacy = bcrypt.hashpw(b"legacy-pass", bcrypt.gensalt()).decode("utf-8")
    assert verify_password("legacy-pass", legacy)
    assert not verify_password("wrong", legacy)


def test_verify_rejects_missing_or_unknown_hash():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "plain-text-not-a-hash")
    assert not verify_password("", hash_password("abcdef"))


def test_validate_password_rules():
    assert validate_password("  abcdef  ") == "abcdef"
    with pytest.raises(ValueError, match="at least 6"):
        validate_password("abc")
    with pytest.raises(ValueError, match="empty"):
        validate_password("   ")
    with pytest.raises(ValueError, match="72 bytes"):
        validate_password("x" * 73)


def test_access_token_round_trip():
    token = create_access_token({"sub": "emp@acme.test", "role": "employee", "company_id": 3})
    payload = decode_token(token)
    assert payload["sub"] == "emp@acme.test"
    assert payload["company_id"] == 3
    assert payload["type"] == "access"


def test_refresh_token_not_accepted_as_access():
    token = create_refresh_token("emp@acme.test")
    with pytest.raises(AuthenticationError):
        decode_token(token)
    assert decode_token(token, expected_type=REFRESH_TOKEN_TYPE)["sub"] == "emp@acme.test"


def test_expired_and_tampered_tokens_fail_the_same_way():
    expired = create_access_token({"sub": "emp@acme.test", "role": "employee"}, expires_minutes=-1)
    forged = jwt.encode(
        {"sub": "emp@acme.test", "role": "master", "type": "access"},
        "not-the-server-secret",
        algorithm=settings.JWT_ALGORITHM,
    )

    with pytest.raises(AuthenticationError) as expired_exc:
        decode_token(expired)
    with pytest.raises(AuthenticationError) as forged_exc:
        decode_token(forged)

    assert expired_exc.value.detail == forged_exc.value.detail == "Invalid or expired token"


def test_invalid_bearer_token_returns_401(client):
    response = client.get(
        "/api/v1/company/info",
        headers={"Authorization": "Bearer invalid_token_here"}
    )
    assert response.status_code == 401
    assert response.headers.get("www-authenticate") == "Bearer"
