"""
Company service - tenant-side administration of branches, employees and modules
"""
import logging
import secrets
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workforce.core.constants import ALL_MODULES
from workforce.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from workforce.core.security import hash_password, validate_password
from workforce.db.session import with_read_retry
from workforce.models.company import Branch, Company
from workforce.models.module_access import BranchManagerModule, CompanyModule
from workforce.models.user import AttendanceMode, Role, User
from workforce.services.audit_service import log_audit
from workforce.services.scope_service import TenantScope, resolve_identity
from workforce.utils.identifiers import normalize_identifier

logger = logging.getLogger(__name__)

# Roles a company admin may create
STAFF_ROLES = (Role.EMPLOYEE, Role.BRANCH_MANAGER)


def get_company(db: Session, company_id: Optional[int]) -> Company:
    company = db.query(Company).filter(Company.id == company_id).first() if company_id is not None else None
    if not company:
        raise NotFoundError("Company not found")
    return company


def count_staff(db: Session, company_id: int, branch_id: Optional[int] = None) -> int:
    query = db.query(func.count(User.id)).filter(
        User.company_id == company_id,
        User.role.in_([r.value for r in STAFF_ROLES]),
    )
    if branch_id is not None:
        query = query.filter(User.branch_id == branch_id)
    return query.scalar() or 0


# Modules

def module_states(db: Session, company_id: int) -> Dict[str, bool]:
    """Enabled flag for every known module; missing rows count as disabled."""
    rows = db.query(CompanyModule).filter(CompanyModule.company_id == company_id).all()
    states = {name: False for name in ALL_MODULES}
    for row in rows:
        states[row.module_name] = bool(row.is_enabled)
    return states


def _module_entry(name: str, enabled: bool, can_view: bool, can_modify: bool, can_update: bool) -> Dict[str, Any]:
    return {
        "module_name": name,
        "is_enabled": enabled,
        "can_view": enabled and can_view,
        "can_modify": enabled and can_modify,
        "can_update": enabled and can_update,
    }


@with_read_retry
def list_modules_for_scope(db: Session, scope: TenantScope) -> List[Dict[str, Any]]:
    """
    Module list in a single shape for company admins and branch managers.

    Company admins get the company toggles with full flags on enabled
    modules; branch managers get the intersection of the company toggles
    with their own grants. Other roles are refused.
    """
    if scope.role not in (Role.COMPANY_ADMIN, Role.BRANCH_MANAGER):
        raise AuthorizationError()

    states = module_states(db, scope.company_id)
    if scope.role == Role.COMPANY_ADMIN:
        return [_module_entry(name, enabled, True, True, True) for name, enabled in sorted(states.items())]

    grants = {}
    manager_id = resolve_identity(db, scope)
    if manager_id is not None:
        grants = {
            g.module_name: g
            for g in db.query(BranchManagerModule).filter(BranchManagerModule.manager_id == manager_id).all()
        }

    entries = []
    for name, enabled in sorted(states.items()):
        grant = grants.get(name)
        if grant is None or not grant.is_enabled:
            entries.append(_module_entry(name, False, False, False, False))
        else:
            entries.append(_module_entry(name, enabled, grant.can_view, grant.can_modify, grant.can_update))
    return entries


def set_company_module(
    db: Session,
    company_id: int,
    module_name: str,
    is_enabled: bool,
    actor_id: Optional[int] = None,
) -> CompanyModule:
    """Enable or disable a module for a whole company."""
    if module_name not in ALL_MODULES:
        raise NotFoundError("Module not found")
    get_company(db, company_id)

    row = db.query(CompanyModule).filter(
        CompanyModule.company_id == company_id,
        CompanyModule.module_name == module_name,
    ).first()
    if row is None:
        row = CompanyModule(company_id=company_id, module_name=module_name)
        db.add(row)
    row.is_enabled = bool(is_enabled)
    db.commit()
    db.refresh(row)

    logger.info("Module %s %s for company %s", module_name, "enabled" if is_enabled else "disabled", company_id)
    log_audit(
        db=db,
        actor_id=actor_id,
        action="MODULE_TOGGLE",
        entity_type="company_modules",
        entity_id=row.id,
        company_id=company_id,
        meta={"module_name": module_name, "is_enabled": bool(is_enabled)},
    )
    return row


# Company info

@with_read_retry
def get_company_info(db: Session, company_id: int) -> Dict[str, Any]:
    company = get_company(db, company_id)
    states = module_states(db, company.id)
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
        "branch_count": db.query(func.count(Branch.id)).filter(Branch.company_id == company.id).scalar() or 0,
        "modules": [{"module_name": n, "is_enabled": e} for n, e in sorted(states.items())],
    }


# Branches

def get_branch(db: Session, company_id: int, branch_id: int) -> Branch:
    branch = db.query(Branch).filter(Branch.id == branch_id, Branch.company_id == company_id).first()
    if not branch:
        raise NotFoundError("Branch not found")
    return branch


@with_read_retry
def list_branches(db: Session, scope: TenantScope) -> List[Branch]:
    """All branches for company admins; branch managers only see their own."""
    query = db.query(Branch).filter(Branch.company_id == scope.company_id)
    if scope.role == Role.BRANCH_MANAGER:
        query = query.filter(Branch.id == scope.branch_id)
    return query.order_by(Branch.name).all()


def _branch_name_taken(db: Session, company_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Branch.id).filter(
        Branch.company_id == company_id,
        Branch.name_key == name.strip().lower(),
    )
    if exclude_id is not None:
        query = query.filter(Branch.id != exclude_id)
    return query.first() is not None


def create_branch(
    db: Session,
    company_id: int,
    name: str,
    address: Optional[str] = None,
    employee_limit: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Branch:
    company = get_company(db, company_id)
    if not name or not name.strip():
        raise ValidationError("Branch name is required", fields=["name"])

    branch_count = db.query(func.count(Branch.id)).filter(Branch.company_id == company.id).scalar() or 0
    if branch_count >= company.branch_limit:
        raise ValidationError(f"Branch limit ({company.branch_limit}) reached")
    if _branch_name_taken(db, company.id, name):
        raise ConflictError("Branch name already exists")

    branch = Branch(
        company_id=company.id,
        name=name,
        address=address,
        employee_limit=employee_limit,
        is_active=True,
    )
    db.add(branch)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Branch name already exists")
    db.refresh(branch)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="branches",
        entity_id=branch.id,
        company_id=company.id,
        meta={"name": branch.name},
    )
    return branch


def update_branch(db: Session, company_id: int, branch_id: int, actor_id: Optional[int] = None, **changes) -> Branch:
    branch = get_branch(db, company_id, branch_id)
    changes = {k: v for k, v in changes.items() if v is not None}

    if "name" in changes:
        if not changes["name"].strip():
            raise ValidationError("Branch name is required", fields=["name"])
        if _branch_name_taken(db, company_id, changes["name"], exclude_id=branch.id):
            raise ConflictError("Branch name already exists")

    for field in ("name", "address", "is_active", "employee_limit"):
        if field in changes:
            setattr(branch, field, changes[field])
    db.commit()
    db.refresh(branch)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="UPDATE",
        entity_type="branches",
        entity_id=branch.id,
        company_id=company_id,
        meta=changes,
    )
    return branch


@with_read_retry
def list_branch_employees(db: Session, company_id: int, branch_id: int) -> List[User]:
    get_branch(db, company_id, branch_id)
    return db.query(User).filter(
        User.company_id == company_id,
        User.branch_id == branch_id,
    ).order_by(User.full_name, User.id).all()


# Employees

@with_read_retry
def list_employees(db: Session, company_id: int) -> List[User]:
    return db.query(User).filter(User.company_id == company_id).order_by(User.full_name, User.id).all()


def get_employee(db: Session, company_id: int, employee_id: int) -> User:
    """A user of the company; anything else is reported as not found."""
    user = db.query(User).filter(User.id == employee_id, User.company_id == company_id).first()
    if not user:
        raise NotFoundError("Employee not found")
    return user


def _identifier_taken(db: Session, company_id: int, email: Optional[str], phone: Optional[str], employee_code: Optional[str]) -> bool:
    if email and db.query(User.id).filter(User.email == email).first():
        return True
    if phone and db.query(User.id).filter(User.phone == phone).first():
        return True
    if employee_code and db.query(User.id).filter(
        User.company_id == company_id,
        User.employee_code == employee_code,
    ).first():
        return True
    return False


def create_employee(
    db: Session,
    company_id: int,
    full_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    employee_code: Optional[str] = None,
    designation: Optional[str] = None,
    role: str = Role.EMPLOYEE.value,
    branch_id: Optional[int] = None,
    password: Optional[str] = None,
    attendance_mode: str = AttendanceMode.GEOFENCING.value,
    actor_id: Optional[int] = None,
) -> User:
    """
    Create an employee or branch manager inside a company.

    Enforces the company and branch employee limits and identifier
    uniqueness.
    """
    company = get_company(db, company_id)

    email = normalize_identifier(email)
    phone = normalize_identifier(phone)
    employee_code = normalize_identifier(employee_code)
    if not (email or phone):
        # Login and OTP resolve users by email or phone only
        raise ValidationError("Email or phone is required", fields=["email", "phone"])

    try:
        role_enum = Role.parse(role)
    except ValueError:
        raise ValidationError("Invalid role", fields=["role"])
    if role_enum not in STAFF_ROLES:
        raise ValidationError("Role must be employee or branch_manager", fields=["role"])

    try:
        mode = AttendanceMode(attendance_mode)
    except ValueError:
        raise ValidationError("Invalid attendance mode. Must be geofencing or location_tracking", fields=["attendance_mode"])

    branch = None
    if branch_id is not None:
        branch = get_branch(db, company.id, branch_id)
    elif role_enum == Role.BRANCH_MANAGER:
        raise ValidationError("A branch manager needs a branch", fields=["branch_id"])

    if count_staff(db, company.id) >= company.employee_limit:
        raise ValidationError(f"Employee limit ({company.employee_limit}) reached")
    if branch is not None and branch.employee_limit is not None:
        if count_staff(db, company.id, branch.id) >= branch.employee_limit:
            raise ValidationError(f"Branch employee limit ({branch.employee_limit}) reached")

    if password:
        try:
            password = validate_password(password)
        except ValueError as e:
            raise ValidationError(str(e), fields=["password"])
    else:
        password = secrets.token_urlsafe(12)

    if _identifier_taken(db, company.id, email, phone, employee_code):
        raise ConflictError("Email, phone or employee code already exists")

    user = User(
        company_id=company.id,
        branch_id=branch.id if branch else None,
        email=email,
        phone=phone,
        employee_code=employee_code,
        full_name=full_name,
        designation=designation,
        role=role_enum.value,
        attendance_mode=mode.value,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email, phone or employee code already exists")
    db.refresh(user)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="users",
        entity_id=user.id,
        company_id=company.id,
        meta={"role": user.role, "branch_id": user.branch_id},
    )
    return user


def update_attendance_mode(db: Session, company_id: int, employee_id: int, mode: str, actor_id: Optional[int] = None) -> User:
    try:
        attendance_mode = AttendanceMode(mode)
    except ValueError:
        raise ValidationError("Invalid attendance mode. Must be geofencing or location_tracking", fields=["attendance_mode"])

    user = get_employee(db, company_id, employee_id)
    user.attendance_mode = attendance_mode.value
    db.commit()
    db.refresh(user)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="UPDATE_ATTENDANCE_MODE",
        entity_type="users",
        entity_id=user.id,
        company_id=company_id,
        meta={"attendance_mode": attendance_mode},
    )
    return user


def reset_employee_password(db: Session, company_id: int, employee_id: int, new_password: str, actor_id: Optional[int] = None) -> User:
    try:
        password = validate_password(new_password)
    except ValueError as e:
        raise ValidationError(str(e), fields=["new_password"])

    user = get_employee(db, company_id, employee_id)
    user.password_hash = hash_password(password)
    db.commit()
    db.refresh(user)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="PASSWORD_RESET",
        entity_type="users",
        entity_id=user.id,
        company_id=company_id,
    )
    return user
