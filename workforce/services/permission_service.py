"""
Permission gate - module-level authorization

The decision itself is the pure `evaluate` function; `authorize` loads the
rows it needs from the store, `enforce` turns a denial into an opaque
AuthorizationError.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from workforce.core.errors import AuthorizationError
from workforce.db.session import with_read_retry
from workforce.models.module_access import (
    AccessLevel,
    BranchManagerModule,
    CompanyModule,
    EmployeeModuleAccess,
)
from workforce.models.user import Role
from workforce.services.scope_service import TenantScope, resolve_identity

logger = logging.getLogger(__name__)


class ModuleAction(str, enum.Enum):
    VIEW = "view"
    MODIFY = "modify"
    UPDATE = "update"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    rule: str


def _manager_flag(grant, action: ModuleAction) -> bool:
    if action == ModuleAction.VIEW:
        return bool(grant.can_view)
    if action == ModuleAction.MODIFY:
        return bool(grant.can_modify)
    return bool(grant.can_update)


def _employee_covers(grant, action: ModuleAction) -> bool:
    # view is covered by view and modify; update counts as modify
    level = grant.access_level
    if action == ModuleAction.VIEW:
        return level in (AccessLevel.VIEW.value, AccessLevel.MODIFY.value)
    return level == AccessLevel.MODIFY.value


def evaluate(
    role: Role,
    action: ModuleAction,
    company_enabled: bool,
    manager_grant: Optional[BranchManagerModule] = None,
    employee_grant: Optional[EmployeeModuleAccess] = None,
    caller_branch_id: Optional[int] = None,
    resource_branch_id: Optional[int] = None,
) -> Decision:
    """
    Decide whether a caller may perform `action` on a module.

    Rules are applied in order and the first match wins:
    platform roles always pass; a module that is not enabled for the
    company denies everyone else; branch managers and employees may not
    touch another branch's resources; company admins pass; branch managers
    need an enabled grant with the matching flag; employees need an
    enabled grant whose access level covers the action.
    """
    if role.is_platform:
        return Decision(True, "platform_role")

    if not company_enabled:
        return Decision(False, "module_disabled_for_company")

    if (
        role in (Role.BRANCH_MANAGER, Role.EMPLOYEE)
        and resource_branch_id is not None
        and resource_branch_id != caller_branch_id
    ):
        return Decision(False, "cross_branch")

    if role == Role.COMPANY_ADMIN:
        return Decision(True, "company_admin")

    if role == Role.BRANCH_MANAGER:
        if manager_grant is None or not manager_grant.is_enabled:
            return Decision(False, "manager_grant_missing")
        if not _manager_flag(manager_grant, action):
            return Decision(False, f"manager_flag_{action.value}_off")
        return Decision(True, "manager_grant")

    if role == Role.EMPLOYEE:
        if employee_grant is None or not employee_grant.is_enabled:
            return Decision(False, "employee_grant_missing")
        if not _employee_covers(employee_grant, action):
            return Decision(False, "employee_access_level")
        return Decision(True, "employee_grant")

    return Decision(False, "unknown_role")


@with_read_retry
def is_module_enabled(db: Session, company_id: Optional[int], module_name: str) -> bool:
    if company_id is None:
        return False
    row = db.query(CompanyModule).filter(
        CompanyModule.company_id == company_id,
        CompanyModule.module_name == module_name,
    ).first()
    return bool(row and row.is_enabled)


@with_read_retry
def _load_grants(db: Session, scope: TenantScope, module_name: str):
    manager_grant = None
    employee_grant = None
    if scope.role not in (Role.BRANCH_MANAGER, Role.EMPLOYEE):
        return manager_grant, employee_grant

    user_id = resolve_identity(db, scope)
    if user_id is None:
        return manager_grant, employee_grant

    if scope.role == Role.BRANCH_MANAGER:
        manager_grant = db.query(BranchManagerModule).filter(
            BranchManagerModule.manager_id == user_id,
            BranchManagerModule.module_name == module_name,
        ).first()
    else:
        employee_grant = db.query(EmployeeModuleAccess).filter(
            EmployeeModuleAccess.employee_id == user_id,
            EmployeeModuleAccess.module_name == module_name,
        ).first()
    return manager_grant, employee_grant


def authorize(
    db: Session,
    scope: TenantScope,
    module_name: str,
    action: ModuleAction,
    resource_branch_id: Optional[int] = None,
) -> Decision:
    if scope.is_platform:
        return evaluate(scope.role, action, company_enabled=False)

    company_enabled = is_module_enabled(db, scope.company_id, module_name)
    manager_grant, employee_grant = (None, None)
    if company_enabled:
        manager_grant, employee_grant = _load_grants(db, scope, module_name)

    return evaluate(
        scope.role,
        ModuleAction(action),
        company_enabled=company_enabled,
        manager_grant=manager_grant,
        employee_grant=employee_grant,
        caller_branch_id=scope.branch_id,
        resource_branch_id=resource_branch_id,
    )


def enforce(
    db: Session,
    scope: TenantScope,
    module_name: str,
    action: ModuleAction,
    resource_branch_id: Optional[int] = None,
) -> None:
    """Raise AuthorizationError unless the caller is allowed."""
    decision = authorize(db, scope, module_name, action, resource_branch_id)
    if not decision.allowed:
        logger.info(
            "Denied %s on module %s for %s (role=%s, company=%s): %s",
            ModuleAction(action).value,
            module_name,
            scope.subject,
            scope.role.value,
            scope.company_id,
            decision.rule,
        )
        raise AuthorizationError()
