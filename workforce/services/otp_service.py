"""
One-time code service

Codes are hashed before they reach the store and expire after
OTP_EXPIRY_SECONDS. Storage and delivery are both pluggable.
"""
import abc
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from workforce.core.config import settings
from workforce.core.errors import NotFoundError, ValidationError
from workforce.core.security import hash_password, validate_password, verify_password
from workforce.models.one_time_code import OneTimeCode
from workforce.models.user import User
from workforce.services.audit_service import log_audit
from workforce.services.auth_service import ensure_tenant_access, find_login_user
from workforce.utils.datetime_utils import ensure_utc, now_utc
from workforce.utils.identifiers import normalize_identifier

logger = logging.getLogger(__name__)


class OtpStore(abc.ABC):
    """Expiring key-value storage for hashed codes."""

    @abc.abstractmethod
    def put(self, key: str, code_hash: str, expires_at: datetime) -> None:
        ...

    @abc.abstractmethod
    def get(self, key: str, now: Optional[datetime] = None) -> Optional[str]:
        """Stored hash for `key`, or None when missing or expired."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        ...


class DatabaseOtpStore(OtpStore):
    def __init__(self, db: Session):
        self.db = db

    def put(self, key: str, code_hash: str, expires_at: datetime) -> None:
        row = self.db.query(OneTimeCode).filter(OneTimeCode.key == key).first()
        if row is None:
            row = OneTimeCode(key=key)
            self.db.add(row)
        row.code_hash = code_hash
        row.expires_at = expires_at
        self.db.commit()

    def get(self, key: str, now: Optional[datetime] = None) -> Optional[str]:
        row = self.db.query(OneTimeCode).filter(OneTimeCode.key == key).first()
        if row is None:
            return None
        if ensure_utc(row.expires_at) <= (now or now_utc()):
            self.delete(key)
            return None
        return row.code_hash

    def delete(self, key: str) -> None:
        self.db.query(OneTimeCode).filter(OneTimeCode.key == key).delete(synchronize_session=False)
        self.db.commit()


class OtpSender(abc.ABC):
    """Delivers a code to the user (SMS, e-mail, ...)."""

    @abc.abstractmethod
    def send(self, user: User, identifier: str, code: str) -> None:
        ...


class LoggingOtpSender(OtpSender):
    """Writes the code to the log; only meant for local development."""

    def send(self, user: User, identifier: str, code: str) -> None:
        if settings.APP_ENV == "local":
            logger.info("OTP for %s: %s", identifier, code)
        else:
            logger.info("OTP issued for user %s", user.id)


def _store_key(identifier: str) -> str:
    return f"otp:{identifier}"


def generate_code(length: Optional[int] = None) -> str:
    length = length or settings.OTP_LENGTH
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def request_otp(
    db: Session,
    username: str,
    store: Optional[OtpStore] = None,
    sender: Optional[OtpSender] = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Issue a code for the user identified by email or phone.

    Raises:
        NotFoundError: If no active user has that identifier
    """
    identifier = normalize_identifier(username)
    user = find_login_user(db, identifier or "")
    if user is None or not user.is_active:
        raise NotFoundError("User not found")

    store = store or DatabaseOtpStore(db)
    sender = sender or LoggingOtpSender()

    code = generate_code()
    expires_at = (now or now_utc()) + timedelta(seconds=settings.OTP_EXPIRY_SECONDS)
    store.put(_store_key(identifier), hash_password(code), expires_at)
    sender.send(user, identifier, code)


def consume_otp(
    db: Session,
    username: str,
    code: str,
    store: Optional[OtpStore] = None,
    now: Optional[datetime] = None,
) -> User:
    """
    Check a code and burn it on success.

    The user must pass the same company and license checks as a password
    login; a refused user keeps the code.

    Raises:
        ValidationError: If the code is expired, missing or wrong
        NotFoundError: If the user disappeared since the code was issued
        AuthorizationError: If the company is inactive
        LicenseExpiredError: If the company license is no longer valid
    """
    identifier = normalize_identifier(username)
    if not identifier:
        raise ValidationError("username or phone required", fields=["username"])

    store = store or DatabaseOtpStore(db)
    key = _store_key(identifier)
    code_hash = store.get(key, now)
    if code_hash is None:
        raise ValidationError("OTP expired")
    if not verify_password(code or "", code_hash):
        raise ValidationError("Invalid OTP")

    user = find_login_user(db, identifier)
    if user is None or not user.is_active:
        raise NotFoundError("User not found")
    ensure_tenant_access(db, user, now)

    store.delete(key)
    return user


def reset_password_with_otp(
    db: Session,
    username: str,
    code: str,
    new_password: str,
    store: Optional[OtpStore] = None,
    now: Optional[datetime] = None,
) -> User:
    try:
        password = validate_password(new_password)
    except ValueError as e:
        raise ValidationError(str(e), fields=["new_password"])

    user = consume_otp(db, username, code, store=store, now=now)
    user.password_hash = hash_password(password)
    db.commit()
    db.refresh(user)

    log_audit(
        db=db,
        actor_id=user.id,
        action="PASSWORD_RESET_OTP",
        entity_type="users",
        entity_id=user.id,
        company_id=user.company_id,
    )
    return user
