"""
Tenant scope resolution

A TenantScope is built from verified token claims. It never trusts a
client-supplied company or branch; every lookup is filtered by the
scope's company.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from workforce.core.errors import AuthenticationError, NotFoundError
from workforce.db.session import with_read_retry
from workforce.models.user import User, Role
from workforce.utils.identifiers import normalize_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantScope:
    subject: str
    role: Role
    company_id: Optional[int] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    user_id: Optional[int] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "TenantScope":
        try:
            role = Role.parse(claims.get("role"))
        except ValueError:
            raise AuthenticationError("Invalid or expired token")

        def _int(key: str) -> Optional[int]:
            value = claims.get(key)
            if value is None or value == "":
                return None
            try:
                return int(value)
            except (TypeError, ValueError):
                raise AuthenticationError("Invalid or expired token")

        return cls(
            subject=str(claims["sub"]),
            role=role,
            company_id=_int("company_id"),
            branch_id=_int("branch_id"),
            branch_name=claims.get("branch_name"),
            user_id=_int("user_id"),
        )

    @property
    def is_platform(self) -> bool:
        return self.role.is_platform


def _company_filter(query, company_id: Optional[int]):
    if company_id is None:
        return query.filter(User.company_id.is_(None))
    return query.filter(User.company_id == company_id)


@with_read_retry
def resolve_identity(db: Session, scope: TenantScope) -> Optional[int]:
    """
    Resolve the caller's user id.

    Uses the embedded user_id when present (it must belong to the scope's
    company). Otherwise the subject is matched against email, phone and
    employee code among users of the token's company; zero or multiple
    matches resolve to None.
    """
    if scope.user_id is not None:
        query = _company_filter(db.query(User.id).filter(User.id == scope.user_id), scope.company_id)
        row = query.first()
        return row[0] if row else None

    identifier = normalize_identifier(scope.subject)
    if not identifier:
        return None

    query = db.query(User.id).filter(
        or_(
            User.email == identifier,
            User.phone == identifier,
            User.employee_code == identifier,
        )
    )
    rows = _company_filter(query, scope.company_id).limit(2).all()
    if len(rows) != 1:
        if rows:
            logger.warning("Subject matched more than one user in company %s", scope.company_id)
        return None
    return rows[0][0]


def get_current_identity(db: Session, scope: TenantScope) -> User:
    """Resolve the caller to an active User or raise NotFoundError."""
    user_id = resolve_identity(db, scope)
    if user_id is None:
        raise NotFoundError("User not found")
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise NotFoundError("User not found")
    return user


@with_read_retry
def resolve_employee_reference(db: Session, scope: TenantScope, ref: str) -> Optional[User]:
    """
    Resolve a path reference (numeric id or login identifier) to a user.

    Non-platform callers only ever see users of their own company.
    """
    raw = (ref or "").strip()
    if not raw:
        return None

    query = db.query(User)
    if not scope.is_platform:
        query = query.filter(User.company_id == scope.company_id)

    if raw.isdigit():
        user = query.filter(User.id == int(raw)).first()
        if user is not None:
            return user

    identifier = normalize_identifier(raw)
    rows = query.filter(
        or_(
            User.email == identifier,
            User.phone == identifier,
            User.employee_code == identifier,
        )
    ).limit(2).all()
    return rows[0] if len(rows) == 1 else None
