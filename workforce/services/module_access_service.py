"""
Module access service - per-user module grants managed by company admins

Grants can only cover modules the company has enabled. Replacing a user's
grant set happens in a single transaction.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workforce.core.constants import ALL_MODULES
from workforce.core.errors import NotFoundError, ValidationError
from workforce.db.session import with_read_retry
from workforce.models.module_access import AccessLevel, BranchManagerModule, EmployeeModuleAccess
from workforce.models.user import Role, User
from workforce.services.audit_service import log_audit
from workforce.services.company_service import get_branch, get_employee, module_states

logger = logging.getLogger(__name__)


def _check_module_names(db: Session, company_id: int, names: Iterable[str]) -> None:
    names = list(names)
    unknown = sorted({n for n in names if n not in ALL_MODULES})
    if unknown:
        raise ValidationError(f"Unknown module(s): {', '.join(unknown)}", fields=["module_name"])

    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate module(s): {', '.join(duplicates)}", fields=["module_name"])

    states = module_states(db, company_id)
    disabled = sorted({n for n in names if not states.get(n)})
    if disabled:
        raise ValidationError(
            f"Module(s) not enabled for the company: {', '.join(disabled)}",
            fields=["module_name"],
        )


def _replace_rows(db: Session, delete_query, rows: List[Any]) -> None:
    try:
        delete_query.delete(synchronize_session=False)
        for row in rows:
            db.add(row)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Module grant replacement rolled back", exc_info=True)
        raise


# Branch managers

def get_manager(db: Session, company_id: int, branch_id: int, manager_id: int) -> User:
    get_branch(db, company_id, branch_id)
    manager = db.query(User).filter(
        User.id == manager_id,
        User.company_id == company_id,
        User.branch_id == branch_id,
        User.role == Role.BRANCH_MANAGER.value,
    ).first()
    if not manager:
        raise NotFoundError("Branch manager not found")
    return manager


@with_read_retry
def list_manager_modules(db: Session, company_id: int, branch_id: int, manager_id: int) -> List[BranchManagerModule]:
    manager = get_manager(db, company_id, branch_id, manager_id)
    return db.query(BranchManagerModule).filter(
        BranchManagerModule.manager_id == manager.id,
    ).order_by(BranchManagerModule.module_name).all()


def replace_manager_modules(
    db: Session,
    company_id: int,
    branch_id: int,
    manager_id: int,
    grants: List[Dict[str, Any]],
    actor_id: Optional[int] = None,
) -> List[BranchManagerModule]:
    """
    Replace a branch manager's whole grant set.

    Each grant is a dict with module_name and optional is_enabled,
    can_view, can_modify and can_update flags.
    """
    manager = get_manager(db, company_id, branch_id, manager_id)
    _check_module_names(db, company_id, (g["module_name"] for g in grants))

    rows = [
        BranchManagerModule(
            manager_id=manager.id,
            module_name=g["module_name"],
            is_enabled=g.get("is_enabled", True),
            can_view=g.get("can_view", True),
            can_modify=g.get("can_modify", False),
            can_update=g.get("can_update", False),
        )
        for g in grants
    ]
    _replace_rows(db, db.query(BranchManagerModule).filter(BranchManagerModule.manager_id == manager.id), rows)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="MODULES_REPLACE",
        entity_type="branch_manager_modules",
        entity_id=manager.id,
        company_id=company_id,
        meta={"modules": grants},
    )
    return list_manager_modules(db, company_id, branch_id, manager.id)


def update_manager_module(
    db: Session,
    company_id: int,
    branch_id: int,
    manager_id: int,
    module_name: str,
    flags: Dict[str, Any],
    actor_id: Optional[int] = None,
) -> BranchManagerModule:
    """Create or update one module grant; only flags present in `flags` change."""
    manager = get_manager(db, company_id, branch_id, manager_id)
    _check_module_names(db, company_id, [module_name])

    row = db.query(BranchManagerModule).filter(
        BranchManagerModule.manager_id == manager.id,
        BranchManagerModule.module_name == module_name,
    ).first()
    if row is None:
        row = BranchManagerModule(manager_id=manager.id, module_name=module_name)
        db.add(row)
    for field in ("is_enabled", "can_view", "can_modify", "can_update"):
        if flags.get(field) is not None:
            setattr(row, field, bool(flags[field]))
    db.commit()
    db.refresh(row)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="MODULE_UPDATE",
        entity_type="branch_manager_modules",
        entity_id=row.id,
        company_id=company_id,
        meta={"manager_id": manager.id, "module_name": module_name, **flags},
    )
    return row


def delete_manager_module(
    db: Session,
    company_id: int,
    branch_id: int,
    manager_id: int,
    module_name: str,
    actor_id: Optional[int] = None,
) -> None:
    manager = get_manager(db, company_id, branch_id, manager_id)
    deleted = db.query(BranchManagerModule).filter(
        BranchManagerModule.manager_id == manager.id,
        BranchManagerModule.module_name == module_name,
    ).delete(synchronize_session=False)
    if not deleted:
        db.rollback()
        raise NotFoundError("Module permission not found")
    db.commit()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="MODULE_DELETE",
        entity_type="branch_manager_modules",
        entity_id=manager.id,
        company_id=company_id,
        meta={"module_name": module_name},
    )


# Employees

def _parse_access_level(value: Optional[str]) -> str:
    try:
        return AccessLevel(value or AccessLevel.VIEW.value).value
    except ValueError:
        raise ValidationError("access_level must be either view or modify", fields=["access_level"])


def get_grant_employee(db: Session, company_id: int, employee_id: int) -> User:
    user = get_employee(db, company_id, employee_id)
    if user.role_enum != Role.EMPLOYEE:
        raise NotFoundError("Employee not found")
    return user


@with_read_retry
def list_employee_modules(db: Session, company_id: int, employee_id: int) -> List[EmployeeModuleAccess]:
    employee = get_grant_employee(db, company_id, employee_id)
    return db.query(EmployeeModuleAccess).filter(
        EmployeeModuleAccess.employee_id == employee.id,
    ).order_by(EmployeeModuleAccess.module_name).all()


def replace_employee_modules(
    db: Session,
    company_id: int,
    employee_id: int,
    grants: List[Dict[str, Any]],
    actor_id: Optional[int] = None,
) -> List[EmployeeModuleAccess]:
    """Replace an employee's whole grant set (module_name, access_level, is_enabled)."""
    employee = get_grant_employee(db, company_id, employee_id)
    _check_module_names(db, company_id, (g["module_name"] for g in grants))

    rows = [
        EmployeeModuleAccess(
            employee_id=employee.id,
            module_name=g["module_name"],
            access_level=_parse_access_level(g.get("access_level")),
            is_enabled=g.get("is_enabled", True),
        )
        for g in grants
    ]
    _replace_rows(db, db.query(EmployeeModuleAccess).filter(EmployeeModuleAccess.employee_id == employee.id), rows)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="MODULES_REPLACE",
        entity_type="employee_module_access",
        entity_id=employee.id,
        company_id=company_id,
        meta={"modules": grants},
    )
    return list_employee_modules(db, company_id, employee.id)


def delete_employee_module(
    db: Session,
    company_id: int,
    employee_id: int,
    module_name: str,
    actor_id: Optional[int] = None,
) -> None:
    employee = get_grant_employee(db, company_id, employee_id)
    deleted = db.query(EmployeeModuleAccess).filter(
        EmployeeModuleAccess.employee_id == employee.id,
        EmployeeModuleAccess.module_name == module_name,
    ).delete(synchronize_session=False)
    if not deleted:
        db.rollback()
        raise NotFoundError("Module access not found")
    db.commit()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="MODULE_DELETE",
        entity_type="employee_module_access",
        entity_id=employee.id,
        company_id=company_id,
        meta={"module_name": module_name},
    )
