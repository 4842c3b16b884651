"""
Tests for settings: defaults, bounds, production guard and the knobs other modules read
"""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from workforce.core.config import Settings, settings
from workforce.core.errors import InfrastructureError
from workforce.core.security import create_access_token, decode_token
from workforce.db.session import with_read_retry

REQUIRED = {"DATABASE_URL": "postgresql://test", "JWT_SECRET_KEY": "test-key"}


def make_settings(**overrides):
    return Settings(**{**REQUIRED, **overrides})


def test_defaults(monkeypatch):
    for name in ("JWT_ACCESS_EXPIRE_MINUTES", "JWT_REFRESH_EXPIRE_DAYS", "OTP_EXPIRY_SECONDS",
                 "OTP_LENGTH", "DB_READ_RETRIES", "ATTENDANCE_TZ", "APP_ENV"):
        monkeypatch.delenv(name, raising=False)

    s = make_settings()
    assert s.JWT_ACCESS_EXPIRE_MINUTES == 15
    assert s.JWT_REFRESH_EXPIRE_DAYS == 30
    assert s.OTP_EXPIRY_SECONDS == 300
    assert s.OTP_LENGTH == 6
    assert s.DB_READ_RETRIES == 1
    assert s.ATTENDANCE_TZ == "Asia/Kolkata"
    assert s.APP_ENV == "local"


@pytest.mark.parametrize("field,value", [
    ("JWT_ACCESS_EXPIRE_MINUTES", 0),
    ("JWT_REFRESH_EXPIRE_DAYS", -1),
    ("OTP_EXPIRY_SECONDS", 0),
    ("OTP_LENGTH", 3),
    ("OTP_LENGTH", 11),
    ("DB_READ_RETRIES", -1),
    ("DB_READ_RETRIES", 6),
])
def test_out_of_range_values_rejected(field, value):
    with pytest.raises(ValidationError):
        make_settings(**{field: value})


def test_log_level_is_upper_cased():
    assert make_settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"
    with pytest.raises(ValidationError):
        make_settings(LOG_LEVEL="chatty")


def test_invalid_app_env_rejected():
    with pytest.raises(ValidationError):
        make_settings(APP_ENV="qa")


def test_unknown_attendance_timezone_rejected():
    with pytest.raises(ValidationError):
        make_settings(ATTENDANCE_TZ="Mars/Olympus_Mons")
    assert make_settings(ATTENDANCE_TZ="Europe/Istanbul").ATTENDANCE_TZ == "Europe/Istanbul"


def test_prod_guard():
    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        make_settings(APP_ENV="prod", JWT_SECRET_KEY="short", ALLOWED_ORIGINS="https://hr.example.com").validate_production()
    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        make_settings(APP_ENV="prod", JWT_SECRET_KEY="a" * 32, ALLOWED_ORIGINS="*").validate_production()

    make_settings(APP_ENV="prod", JWT_SECRET_KEY="a" * 32, ALLOWED_ORIGINS="https://hr.example.com").validate_production()
    make_settings(APP_ENV="local", ALLOWED_ORIGINS="*").validate_production()


def test_allowed_origins_list():
    assert make_settings(ALLOWED_ORIGINS="*").get_allowed_origins_list() == ["*"]
    origins = make_settings(ALLOWED_ORIGINS=" https://a.example.com, ,https://b.example.com ").get_allowed_origins_list()
    assert origins == ["https://a.example.com", "https://b.example.com"]


def test_access_token_lifetime_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "JWT_ACCESS_EXPIRE_MINUTES", 5)
    payload = decode_token(create_access_token({"sub": "emp@acme.test", "role": "employee"}))

    lifetime = payload["exp"] - int(datetime.now(timezone.utc).timestamp())
    assert 240 <= lifetime <= 300


class FlakySession:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


def flaky_read(failures):
    calls = []

    @with_read_retry
    def read(db):
        calls.append(1)
        if len(calls) <= failures:
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))
        return "row"

    return read, calls


def test_read_retry_uses_configured_attempts(monkeypatch):
    monkeypatch.setattr(settings, "DB_READ_RETRIES", 2)
    read, calls = flaky_read(failures=2)
    session = FlakySession()

    assert read(session) == "row"
    assert len(calls) == 3
    assert session.rollbacks == 2


def test_read_retry_disabled(monkeypatch):
    monkeypatch.setattr(settings, "DB_READ_RETRIES", 0)
    read, calls = flaky_read(failures=1)

    with pytest.raises(InfrastructureError):
        read(FlakySession())
    assert len(calls) == 1
