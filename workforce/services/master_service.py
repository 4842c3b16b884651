"""
Master service - platform-side company provisioning
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workforce.core.config import settings
from workforce.core.constants import ALL_MODULES
from workforce.core.errors import ConflictError, NotFoundError, ValidationError
from workforce.core.security import hash_password, validate_password
from workforce.db.session import with_read_retry
from workforce.models.company import Company
from workforce.models.module_access import CompanyModule
from workforce.models.user import Role, User
from workforce.services.audit_service import log_audit
from workforce.services.company_service import count_staff, get_company, module_states
from workforce.services.license_service import create_default_license, evaluate_license
from workforce.utils.identifiers import normalize_company_code, normalize_identifier

logger = logging.getLogger(__name__)


def create_company(
    db: Session,
    company_code: str,
    name: str,
    admin_username: str,
    admin_password: str,
    email: Optional[str] = None,
    contact_number: Optional[str] = None,
    employee_limit: Optional[int] = None,
    branch_limit: Optional[int] = None,
    default_modules: Iterable[str] = (),
    actor_id: Optional[int] = None,
) -> Company:
    """
    Provision a company with its module rows, a one-year license and the
    company admin account, all in one transaction.
    """
    code = normalize_company_code(company_code)
    if not code or not name or not name.strip():
        raise ValidationError("company_code and name are required", fields=["company_code", "name"])

    admin_identifier = normalize_identifier(admin_username)
    if not admin_identifier:
        raise ValidationError("admin username is required", fields=["admin_username"])
    try:
        admin_password = validate_password(admin_password)
    except ValueError as e:
        raise ValidationError(str(e), fields=["admin_password"])

    default_modules = list(default_modules or [])
    unknown = sorted(set(default_modules) - set(ALL_MODULES))
    if unknown:
        raise ValidationError(f"Unknown module(s): {', '.join(unknown)}", fields=["default_modules"])

    if db.query(Company.id).filter(Company.company_code == code).first():
        raise ConflictError("Company code already exists")
    admin_is_email = "@" in admin_identifier
    if db.query(User.id).filter(
        (User.email == admin_identifier) if admin_is_email else (User.phone == admin_identifier)
    ).first():
        raise ConflictError("Admin username already exists")

    try:
        company = Company(
            company_code=code,
            name=name.strip(),
            email=email,
            contact_number=contact_number,
            employee_limit=employee_limit or settings.DEFAULT_EMPLOYEE_LIMIT,
            branch_limit=branch_limit or settings.DEFAULT_BRANCH_LIMIT,
            is_active=True,
        )
        db.add(company)
        db.flush()

        for module_name in ALL_MODULES:
            db.add(CompanyModule(
                company_id=company.id,
                module_name=module_name,
                is_enabled=module_name in default_modules,
            ))

        create_default_license(db, company)

        db.add(User(
            company_id=company.id,
            email=admin_identifier if admin_is_email else None,
            phone=None if admin_is_email else admin_identifier,
            full_name=f"{company.name} Admin",
            role=Role.COMPANY_ADMIN.value,
            password_hash=hash_password(admin_password),
            is_active=True,
        ))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Company code or username already exists")
    db.refresh(company)

    logger.info("Company %s (%s) created", company.id, company.company_code)
    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="companies",
        entity_id=company.id,
        company_id=company.id,
        meta={"company_code": company.company_code, "default_modules": default_modules},
    )
    return company


def company_summary(db: Session, company: Company) -> Dict[str, Any]:
    status = evaluate_license(company.license)
    return {
        "id": company.id,
        "company_code": company.company_code,
        "name": company.name,
        "email": company.email,
        "contact_number": company.contact_number,
        "is_active": company.is_active,
        "employee_limit": company.employee_limit,
        "branch_limit": company.branch_limit,
        "employee_count": count_staff(db, company.id),
        "license_valid": status.valid,
        "remaining_days": max(0, status.remaining_days),
        "created_at": company.created_at,
    }


@with_read_retry
def list_companies(db: Session) -> List[Dict[str, Any]]:
    companies = db.query(Company).order_by(Company.created_at.desc(), Company.id.desc()).all()
    return [company_summary(db, c) for c in companies]


@with_read_retry
def get_company_details(db: Session, company_id: int) -> Dict[str, Any]:
    company = get_company(db, company_id)
    details = company_summary(db, company)
    details["modules"] = [{"module_name": n, "is_enabled": e} for n, e in sorted(module_states(db, company.id).items())]
    details["admins"] = [
        {"id": u.id, "email": u.email, "phone": u.phone, "full_name": u.full_name, "is_active": u.is_active}
        for u in db.query(User).filter(
            User.company_id == company.id,
            User.role == Role.COMPANY_ADMIN.value,
        ).order_by(User.id).all()
    ]
    return details


def update_company(db: Session, company_id: int, actor_id: Optional[int] = None, **changes) -> Company:
    company = get_company(db, company_id)
    changes = {k: v for k, v in changes.items() if v is not None}

    for field in ("employee_limit", "branch_limit"):
        if field in changes and changes[field] < 1:
            raise ValidationError(f"{field} must be at least 1", fields=[field])
    if "name" in changes and not changes["name"].strip():
        raise ValidationError("Company name is required", fields=["name"])

    for field in ("name", "email", "contact_number", "is_active", "employee_limit", "branch_limit"):
        if field in changes:
            setattr(company, field, changes[field])
    db.commit()
    db.refresh(company)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="UPDATE",
        entity_type="companies",
        entity_id=company.id,
        company_id=company.id,
        meta=changes,
    )
    return company


@with_read_retry
def list_company_users(db: Session, company_id: int) -> List[User]:
    company = get_company(db, company_id)
    return db.query(User).filter(User.company_id == company.id).order_by(User.full_name, User.id).all()


def _set_password(db: Session, user: User, new_password: str, actor_id: Optional[int], action: str) -> User:
    try:
        password = validate_password(new_password)
    except ValueError as e:
        raise ValidationError(str(e), fields=["new_password"])

    user.password_hash = hash_password(password)
    db.commit()
    db.refresh(user)

    log_audit(
        db=db,
        actor_id=actor_id,
        action=action,
        entity_type="users",
        entity_id=user.id,
        company_id=user.company_id,
    )
    return user


def reset_company_password(db: Session, company_id: int, new_password: str, actor_id: Optional[int] = None) -> User:
    """
    Reset the password of the company's primary admin.

    The primary admin is the oldest company_admin account, i.e. the one
    created together with the company.
    """
    company = get_company(db, company_id)
    admin = db.query(User).filter(
        User.company_id == company.id,
        User.role == Role.COMPANY_ADMIN.value,
    ).order_by(User.id).first()
    if admin is None:
        raise NotFoundError("Company admin not found")

    logger.info("Resetting primary admin password for company %s", company.id)
    return _set_password(db, admin, new_password, actor_id, "COMPANY_PASSWORD_RESET")


def reset_user_password(db: Session, user_id: int, new_password: str, actor_id: Optional[int] = None) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return _set_password(db, user, new_password, actor_id, "PASSWORD_RESET")
