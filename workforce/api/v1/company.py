"""
Company endpoints (company admins; some reads open to branch managers)
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from workforce.core.deps import get_db, require_tenant_roles
from workforce.core.errors import AuthorizationError
from workforce.models.user import Role
from workforce.schemas.auth import CompanyLoginRequest, CompanyTokenResponse, MessageResponse, PasswordChangeRequest
from workforce.schemas.company import (
    AttendanceModeUpdate,
    BranchCreate,
    BranchOut,
    BranchUpdate,
    CompanyInfoOut,
    EmployeeCreate,
    EmployeeGeofenceAssign,
    EmployeeGeofenceAssignmentOut,
    EmployeeModuleOut,
    EmployeeModulesReplace,
    EmployeeOut,
    EmployeeZoneOut,
    ManagerModuleOut,
    ManagerModulesReplace,
    ManagerModuleUpdate,
    ModuleEntry,
    ModuleState,
    ModuleToggleRequest,
    PasswordResetRequest,
)
from workforce.services import auth_service, company_service, geofence_service, module_access_service
from workforce.services.scope_service import TenantScope, get_current_identity, resolve_identity

router = APIRouter()

company_admin = require_tenant_roles(Role.COMPANY_ADMIN)
admin_or_manager = require_tenant_roles(Role.COMPANY_ADMIN, Role.BRANCH_MANAGER)


def _check_branch_access(scope: TenantScope, branch_id: int) -> None:
    if scope.role == Role.BRANCH_MANAGER and scope.branch_id != branch_id:
        raise AuthorizationError()


@router.post("/login", response_model=CompanyTokenResponse)
async def company_login(
    login_data: CompanyLoginRequest,
    db: Session = Depends(get_db)
):
    """
    Login for company admins and branch managers

    The company must be active and hold a valid license.
    """
    return auth_service.company_login(db, login_data.company_code, login_data.username, login_data.password)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(admin_or_manager)
):
    """Change the caller's own password"""
    user = get_current_identity(db, scope)
    auth_service.change_password(db, user, payload.current_password, payload.new_password)
    return {"message": "Password changed successfully"}


@router.get("/info", response_model=CompanyInfoOut)
async def get_company_info(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return company_service.get_company_info(db, scope.company_id)


@router.get("/modules", response_model=List[ModuleEntry])
async def list_modules(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(admin_or_manager)
):
    """Modules with the caller's effective flags"""
    return company_service.list_modules_for_scope(db, scope)


@router.put("/modules/{module_name}", response_model=ModuleState)
async def toggle_module(
    module_name: str,
    payload: ModuleToggleRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return company_service.set_company_module(
        db, scope.company_id, module_name, payload.is_enabled, actor_id=resolve_identity(db, scope)
    )


# Branches

@router.get("/branches", response_model=List[BranchOut])
async def list_branches(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(admin_or_manager)
):
    return company_service.list_branches(db, scope)


@router.post("/branches", response_model=BranchOut, status_code=201)
async def create_branch(
    payload: BranchCreate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return company_service.create_branch(
        db,
        scope.company_id,
        payload.name,
        address=payload.address,
        employee_limit=payload.employee_limit,
        actor_id=resolve_identity(db, scope),
    )


@router.put("/branches/{branch_id}", response_model=BranchOut)
async def update_branch(
    branch_id: int,
    payload: BranchUpdate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return company_service.update_branch(
        db, scope.company_id, branch_id, actor_id=resolve_identity(db, scope), **payload.model_dump(exclude_unset=True)
    )


@router.get("/branches/{branch_id}/employees", response_model=List[EmployeeOut])
async def list_branch_employees(
    branch_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(admin_or_manager)
):
    _check_branch_access(scope, branch_id)
    return company_service.list_branch_employees(db, scope.company_id, branch_id)


@router.get("/branches/{branch_id}/managers/{manager_id}/modules", response_model=List[ManagerModuleOut])
async def list_manager_modules(
    branch_id: int,
    manager_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(admin_or_manager)
):
    _check_branch_access(scope, branch_id)
    return module_access_service.list_manager_modules(db, scope.company_id, branch_id, manager_id)


@router.put("/branches/{branch_id}/managers/{manager_id}/modules", response_model=List[ManagerModuleOut])
async def replace_manager_modules(
    branch_id: int,
    manager_id: int,
    payload: ManagerModulesReplace,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    """Replace the manager's whole module set in one transaction"""
    return module_access_service.replace_manager_modules(
        db,
        scope.company_id,
        branch_id,
        manager_id,
        [g.model_dump() for g in payload.modules],
        actor_id=resolve_identity(db, scope),
    )


@router.put("/branches/{branch_id}/managers/{manager_id}/modules/{module_name}", response_model=ManagerModuleOut)
async def update_manager_module(
    branch_id: int,
    manager_id: int,
    module_name: str,
    payload: ManagerModuleUpdate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return module_access_service.update_manager_module(
        db,
        scope.company_id,
        branch_id,
        manager_id,
        module_name,
        payload.model_dump(exclude_unset=True),
        actor_id=resolve_identity(db, scope),
    )


@router.delete("/branches/{branch_id}/managers/{manager_id}/modules/{module_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_manager_module(
    branch_id: int,
    manager_id: int,
    module_name: str,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    module_access_service.delete_manager_module(
        db, scope.company_id, branch_id, manager_id, module_name, actor_id=resolve_identity(db, scope)
    )


# Employees

@router.get("/employees", response_model=List[EmployeeOut])
async def list_employees(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return company_service.list_employees(db, scope.company_id)


@router.post("/employees", response_model=EmployeeOut, status_code=201)
async def create_employee(
    payload: EmployeeCreate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    """Create an employee or branch manager (subject to company and branch limits)"""
    return company_service.create_employee(
        db,
        scope.company_id,
        actor_id=resolve_identity(db, scope),
        **payload.model_dump(),
    )


@router.put("/employees/{employee_id}/attendance-mode", response_model=EmployeeOut)
async def update_attendance_mode(
    employee_id: int,
    payload: AttendanceModeUpdate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return company_service.update_attendance_mode(
        db, scope.company_id, employee_id, payload.attendance_mode, actor_id=resolve_identity(db, scope)
    )


@router.post("/employees/{employee_id}/reset-password", response_model=MessageResponse)
async def reset_employee_password(
    employee_id: int,
    payload: PasswordResetRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    company_service.reset_employee_password(
        db, scope.company_id, employee_id, payload.new_password, actor_id=resolve_identity(db, scope)
    )
    return {"message": "Password reset successfully"}


@router.get("/employees/{employee_id}/modules", response_model=List[EmployeeModuleOut])
async def list_employee_modules(
    employee_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    return module_access_service.list_employee_modules(db, scope.company_id, employee_id)


@router.put("/employees/{employee_id}/modules", response_model=List[EmployeeModuleOut])
async def replace_employee_modules(
    employee_id: int,
    payload: EmployeeModulesReplace,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    """Replace the employee's whole module set in one transaction"""
    return module_access_service.replace_employee_modules(
        db,
        scope.company_id,
        employee_id,
        [g.model_dump() for g in payload.modules],
        actor_id=resolve_identity(db, scope),
    )


@router.delete("/employees/{employee_id}/modules/{module_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee_module(
    employee_id: int,
    module_name: str,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    module_access_service.delete_employee_module(
        db, scope.company_id, employee_id, module_name, actor_id=resolve_identity(db, scope)
    )


# Employee geofence zones

@router.post("/employees/{employee_id}/geofence", response_model=EmployeeGeofenceAssignmentOut)
async def assign_employee_geofence(
    employee_id: int,
    payload: EmployeeGeofenceAssign,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    """Assign a company zone to an employee"""
    return geofence_service.assign_employee_zone(
        db, scope.company_id, employee_id, payload.geofence_zone_id, actor_id=resolve_identity(db, scope)
    )


@router.get("/employees/{employee_id}/geofence", response_model=List[EmployeeZoneOut])
async def list_employee_geofences(
    employee_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    """Company zones with the employee's assignments first"""
    return geofence_service.list_employee_zones(db, scope.company_id, employee_id)


@router.delete("/employees/{employee_id}/geofence/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_employee_geofence(
    employee_id: int,
    zone_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(company_admin)
):
    geofence_service.remove_employee_zone(
        db, scope.company_id, employee_id, zone_id, actor_id=resolve_identity(db, scope)
    )
