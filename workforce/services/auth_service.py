"""
Authentication service - credential checks and token issuance
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from workforce.core.errors import AuthenticationError, AuthorizationError, LicenseExpiredError, ValidationError
from workforce.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    validate_password,
    verify_password,
)
from workforce.models.company import Company
from workforce.models.user import User, Role
from workforce.services.audit_service import log_audit
from workforce.services.license_service import check_license
from workforce.utils.identifiers import normalize_company_code, normalize_identifier

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _match_identifier(query, identifier: str, include_employee_code: bool):
    conditions = [User.email == identifier, User.phone == identifier]
    if include_employee_code:
        conditions.append(User.employee_code == identifier)
    return query.filter(or_(*conditions))


def find_login_user(db: Session, username: str) -> Optional[User]:
    """
    Find the single user whose email or phone equals `username`.

    Email and phone are globally unique; anything but exactly one match
    returns None.
    """
    identifier = normalize_identifier(username)
    if not identifier:
        return None
    rows = _match_identifier(db.query(User), identifier, include_employee_code=False).limit(2).all()
    return rows[0] if len(rows) == 1 else None


def build_claims(user: User, include_user_id: bool = True) -> Dict[str, Any]:
    """Access-token claims for a user; platform users carry no tenant claims."""
    claims: Dict[str, Any] = {"sub": user.subject, "role": user.role_enum.value}
    if user.role_enum.is_platform:
        if include_user_id:
            claims["user_id"] = user.id
        return claims

    claims["company_id"] = user.company_id
    claims["branch_id"] = user.branch_id
    claims["branch_name"] = user.branch.name if user.branch is not None else None
    if include_user_id:
        claims["user_id"] = user.id
    return claims


def issue_tokens(user: User, include_user_id: Optional[bool] = None) -> Dict[str, Any]:
    """
    Mint an access/refresh pair.

    Employee tokens leave user_id out by default; their identity is
    resolved from the subject on each request.
    """
    if include_user_id is None:
        include_user_id = user.role_enum != Role.EMPLOYEE
    claims = build_claims(user, include_user_id=include_user_id)
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(user.subject),
        "token_type": "bearer",
        "user": claims,
    }


def _ensure_company_can_login(db: Session, company: Optional[Company], now: Optional[datetime] = None) -> None:
    if company is None or not company.is_active:
        raise AuthorizationError("Company is inactive")
    status = check_license(db, company.id, now)
    if not status.valid:
        logger.info("Login refused for company %s: license invalid (%s day(s) left)", company.id, status.remaining_days)
        raise LicenseExpiredError(status.remaining_days)


def ensure_tenant_access(db: Session, user: User, now: Optional[datetime] = None) -> None:
    """Refuse users whose company is inactive or unlicensed; platform users always pass."""
    if user.company_id is not None:
        _ensure_company_can_login(db, user.company, now)


def login(db: Session, username: str, password: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Username/password login for tenant users.

    Credentials are verified first, then the company and its license.
    """
    user = find_login_user(db, username)
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise AuthenticationError(INVALID_CREDENTIALS)

    ensure_tenant_access(db, user, now)

    logger.info("User %s logged in (role=%s)", user.id, user.role)
    return issue_tokens(user)


def company_login(
    db: Session,
    company_code: str,
    username: str,
    password: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Login for company admins and branch managers, keyed by company code."""
    company = db.query(Company).filter(Company.company_code == normalize_company_code(company_code)).first()
    identifier = normalize_identifier(username)
    if company is None or not identifier:
        raise AuthenticationError("Invalid company code, username, or password")

    rows = _match_identifier(
        db.query(User).filter(
            User.company_id == company.id,
            User.role.in_([Role.COMPANY_ADMIN.value, Role.BRANCH_MANAGER.value]),
        ),
        identifier,
        include_employee_code=True,
    ).limit(2).all()
    user = rows[0] if len(rows) == 1 else None
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid company code, username, or password")

    _ensure_company_can_login(db, company, now)

    result = issue_tokens(user, include_user_id=True)
    result["company"] = {
        "id": company.id,
        "company_code": company.company_code,
        "name": company.name,
    }
    logger.info("Company login for company %s by user %s (role=%s)", company.id, user.id, user.role)
    return result


def master_login(db: Session, username: str, password: str) -> Dict[str, Any]:
    """Platform operator login; never subject to license checks."""
    identifier = normalize_identifier(username)
    user = None
    if identifier:
        user = _match_identifier(
            db.query(User).filter(
                User.company_id.is_(None),
                User.role.in_([Role.MASTER.value, Role.ADMIN.value]),
            ),
            identifier,
            include_employee_code=True,
        ).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise AuthenticationError(INVALID_CREDENTIALS)
    return issue_tokens(user)


def _users_for_subject(db: Session, subject: str) -> List[User]:
    identifier = normalize_identifier(subject)
    if not identifier:
        return []
    return _match_identifier(
        db.query(User).filter(User.is_active.is_(True)),
        identifier,
        include_employee_code=True,
    ).limit(2).all()


def refresh(db: Session, refresh_token: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Exchange a refresh token for a new access token.

    The subject must resolve to exactly one active user; claims are rebuilt
    from the stored user. Credentials are not re-checked, but the company
    must still be active and licensed.
    """
    payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
    users = _users_for_subject(db, payload["sub"])
    if len(users) != 1:
        logger.info("Refresh refused: subject resolved to %s active user(s)", len(users))
        raise AuthenticationError("Invalid or expired token")
    ensure_tenant_access(db, users[0], now)
    return issue_tokens(users[0])


def change_password(db: Session, user: User, current_password: str, new_password: str) -> User:
    """
    Change a user's own password.

    Raises:
        AuthenticationError: If the current password does not match
        ValidationError: If the new password is too weak
    """
    if not verify_password(current_password or "", user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    try:
        password = validate_password(new_password)
    except ValueError as e:
        raise ValidationError(str(e), fields=["new_password"])

    user.password_hash = hash_password(password)
    db.commit()
    db.refresh(user)

    logger.info("User %s changed their password", user.id)
    log_audit(
        db=db,
        actor_id=user.id,
        action="PASSWORD_CHANGE",
        entity_type="users",
        entity_id=user.id,
        company_id=user.company_id,
    )
    return user
