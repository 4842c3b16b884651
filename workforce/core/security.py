"""
Security utilities: secret hashing and signed session tokens
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import argon2
import bcrypt
from jose import JWTError, jwt

from workforce.core.config import settings
from workforce.core.errors import AuthenticationError
from workforce.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_argon2_hasher = argon2.PasswordHasher()


def _bcrypt_bytes(secret: str) -> bytes:
    # Bcrypt only looks at the first 72 bytes
    return secret.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    """Hash a secret (password or one-time code) with argon2"""
    return _argon2_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a secret against its stored hash.

    Accepts argon2 hashes and bcrypt hashes imported from older records.
    Unknown or broken hashes never verify.
    """
    if not plain_password or not hashed_password:
        return False

    if hashed_password.startswith("$argon2"):
        try:
            return _argon2_hasher.verify(hashed_password, plain_password)
        except argon2.exceptions.VerificationError:
            return False
        except argon2.exceptions.InvalidHashError:
            logger.warning("Invalid argon2 hash encountered during verification")
            return False

    if hashed_password.startswith("$2"):
        try:
            return bcrypt.checkpw(_bcrypt_bytes(plain_password), hashed_password.encode("utf-8"))
        except ValueError:
            logger.warning("Invalid bcrypt hash encountered during verification")
            return False

    return False


def validate_password(password: Optional[str]) -> str:
    """
    Validate and normalize a new password

    Raises:
        ValueError: If password is invalid with specific error message
    """
    if password is None:
        raise ValueError("Password is required")

    password = password.strip()
    if not password:
        raise ValueError("Password cannot be empty")
    if len(password) < 6:
        raise ValueError("Password must be at least 6 characters")
    if len(password.encode("utf-8")) > 72:
        raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")
    return password


def create_access_token(claims: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """
    Create a signed access token.

    `claims` must contain `sub` and `role`; tenant tokens also carry
    company_id, branch_id, branch_name and user_id.
    """
    if expires_minutes is None:
        expires_minutes = settings.JWT_ACCESS_EXPIRE_MINUTES

    to_encode = {k: v for k, v in claims.items() if k not in ("exp", "type")}
    to_encode["type"] = ACCESS_TOKEN_TYPE
    to_encode["exp"] = now_utc() + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(subject: str, expires_days: Optional[int] = None) -> str:
    """Create a refresh token; it carries only the subject"""
    if expires_days is None:
        expires_days = settings.JWT_REFRESH_EXPIRE_DAYS

    to_encode = {
        "sub": subject,
        "type": REFRESH_TOKEN_TYPE,
        "exp": now_utc() + timedelta(days=expires_days),
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> Dict[str, Any]:
    """
    Decode and verify a token.

    Expired, tampered and wrong-type tokens all raise the same
    AuthenticationError so callers cannot tell them apart.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as e:
        logger.debug("Token rejected: %s", e)
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != expected_type or not payload.get("sub"):
        logger.debug("Token rejected: wrong type or missing subject")
        raise AuthenticationError("Invalid or expired token")
    return payload
