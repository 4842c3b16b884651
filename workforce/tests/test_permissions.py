"""
Tests for the module permission gate
"""
from types import SimpleNamespace

import pytest

from workforce.core.errors import AuthorizationError
from workforce.models.module_access import BranchManagerModule, EmployeeModuleAccess
from workforce.models.user import Role
from workforce.services.permission_service import ModuleAction, authorize, enforce, evaluate
from workforce.services.scope_service import TenantScope


def manager_grant(is_enabled=True, can_view=True, can_modify=False, can_update=False):
    return SimpleNamespace(is_enabled=is_enabled, can_view=can_view, can_modify=can_modify, can_update=can_update)


def employee_grant(access_level="view", is_enabled=True):
    return SimpleNamespace(access_level=access_level, is_enabled=is_enabled)


@pytest.mark.parametrize("role", [Role.MASTER, Role.ADMIN])
def test_platform_roles_always_pass(role):
    decision = evaluate(role, ModuleAction.UPDATE, company_enabled=False)
    assert decision.allowed
    assert decision.rule == "platform_role"


def test_disabled_module_denies_company_admin():
    decision = evaluate(Role.COMPANY_ADMIN, ModuleAction.VIEW, company_enabled=False)
    assert not decision.allowed
    assert decision.rule == "module_disabled_for_company"


def test_company_admin_passes_enabled_module():
    assert evaluate(Role.COMPANY_ADMIN, ModuleAction.UPDATE, company_enabled=True).allowed


def test_company_admin_not_limited_by_branch():
    decision = evaluate(
        Role.COMPANY_ADMIN, ModuleAction.MODIFY, company_enabled=True,
        caller_branch_id=None, resource_branch_id=7,
    )
    assert decision.allowed


def test_manager_needs_grant():
    decision = evaluate(Role.BRANCH_MANAGER, ModuleAction.VIEW, company_enabled=True)
    assert not decision.allowed
    assert decision.rule == "manager_grant_missing"

    decision = evaluate(
        Role.BRANCH_MANAGER, ModuleAction.VIEW, company_enabled=True,
        manager_grant=manager_grant(is_enabled=False),
    )
    assert decision.rule == "manager_grant_missing"


@pytest.mark.parametrize("action,flags,allowed", [
    (ModuleAction.VIEW, {"can_view": True}, True),
    (ModuleAction.VIEW, {"can_view": False}, False),
    (ModuleAction.MODIFY, {"can_modify": True}, True),
    (ModuleAction.MODIFY, {"can_modify": False}, False),
    (ModuleAction.UPDATE, {"can_update": True}, True),
    (ModuleAction.UPDATE, {"can_modify": True, "can_update": False}, False),
])
def test_manager_flag_matches_action(action, flags, allowed):
    decision = evaluate(
        Role.BRANCH_MANAGER, action, company_enabled=True,
        manager_grant=manager_grant(**flags),
    )
    assert decision.allowed is allowed
    if not allowed:
        assert decision.rule == f"manager_flag_{action.value}_off"


def test_employee_denied_without_grant():
    decision = evaluate(Role.EMPLOYEE, ModuleAction.VIEW, company_enabled=True)
    assert not decision.allowed
    assert decision.rule == "employee_grant_missing"


@pytest.mark.parametrize("level,action,allowed", [
    ("view", ModuleAction.VIEW, True),
    ("view", ModuleAction.MODIFY, False),
    ("view", ModuleAction.UPDATE, False),
    ("modify", ModuleAction.VIEW, True),
    ("modify", ModuleAction.MODIFY, True),
    ("modify", ModuleAction.UPDATE, True),
])
def test_employee_access_level(level, action, allowed):
    decision = evaluate(
        Role.EMPLOYEE, action, company_enabled=True,
        employee_grant=employee_grant(level),
    )
    assert decision.allowed is allowed


def test_cross_branch_denied_before_grants():
    decision = evaluate(
        Role.BRANCH_MANAGER, ModuleAction.VIEW, company_enabled=True,
        manager_grant=manager_grant(can_view=True),
        caller_branch_id=1, resource_branch_id=2,
    )
    assert not decision.allowed
    assert decision.rule == "cross_branch"

    decision = evaluate(
        Role.EMPLOYEE, ModuleAction.VIEW, company_enabled=True,
        employee_grant=employee_grant("modify"),
        caller_branch_id=1, resource_branch_id=2,
    )
    assert decision.rule == "cross_branch"


def test_same_branch_resource_allowed():
    decision = evaluate(
        Role.BRANCH_MANAGER, ModuleAction.VIEW, company_enabled=True,
        manager_grant=manager_grant(),
        caller_branch_id=2, resource_branch_id=2,
    )
    assert decision.allowed


# Against the store

def _scope(user, role):
    return TenantScope(
        subject=user.subject,
        role=role,
        company_id=user.company_id,
        branch_id=user.branch_id,
        user_id=None if role == Role.EMPLOYEE else user.id,
    )


def test_authorize_loads_employee_grant(db, test_employee):
    scope = _scope(test_employee, Role.EMPLOYEE)
    assert authorize(db, scope, "attendance", ModuleAction.VIEW).rule == "employee_grant_missing"

    db.add(EmployeeModuleAccess(employee_id=test_employee.id, module_name="attendance", access_level="view"))
    db.commit()
    assert authorize(db, scope, "attendance", ModuleAction.VIEW).allowed
    assert not authorize(db, scope, "attendance", ModuleAction.MODIFY).allowed


def test_authorize_ignores_grant_for_disabled_module(db, test_employee):
    db.add(EmployeeModuleAccess(employee_id=test_employee.id, module_name="payroll", access_level="modify"))
    db.commit()
    decision = authorize(db, _scope(test_employee, Role.EMPLOYEE), "payroll", ModuleAction.VIEW)
    assert decision.rule == "module_disabled_for_company"


def test_enforce_raises_opaque_error(db, test_manager):
    db.add(BranchManagerModule(manager_id=test_manager.id, module_name="inventory", can_view=True))
    db.commit()
    scope = _scope(test_manager, Role.BRANCH_MANAGER)

    enforce(db, scope, "inventory", ModuleAction.VIEW)
    with pytest.raises(AuthorizationError) as exc:
        enforce(db, scope, "inventory", ModuleAction.MODIFY)
    assert exc.value.detail == "Forbidden"
