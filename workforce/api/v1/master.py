"""
Master (platform operator) endpoints: companies, their users and licenses
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from workforce.core.deps import get_db, require_roles
from workforce.models.user import Role
from workforce.schemas.auth import LoginRequest, MessageResponse, PasswordChangeRequest, TokenResponse
from workforce.schemas.company import EmployeeOut, ModuleState, ModuleToggleRequest, PasswordResetRequest
from workforce.schemas.master import (
    CompanyCreate,
    CompanyDetailOut,
    CompanyOut,
    CompanyUpdate,
    LicenseDuration,
    LicenseOut,
    LicenseRefreshResponse,
    LicenseValidateRequest,
    LicenseValidateResponse,
)
from workforce.services import auth_service, company_service, license_service, master_service
from workforce.services.scope_service import TenantScope, get_current_identity, resolve_identity

router = APIRouter()

platform_only = require_roles(Role.MASTER, Role.ADMIN)


def _license_out(license) -> LicenseOut:
    return LicenseOut(
        id=license.id,
        company_id=license.company_id,
        start_date=license.start_date,
        duration_value=license.duration_value,
        duration_unit=license.duration_unit,
        end_date=license.end_date,
        is_active=license.is_active,
        remaining_days=max(0, license.remaining_days()),
    )


@router.post("/login", response_model=TokenResponse)
async def master_login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """Platform operator login; not subject to any company license"""
    return auth_service.master_login(db, login_data.username, login_data.password)


@router.post("/change-password", response_model=MessageResponse)
async def change_master_password(
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    """Change the calling operator's own password"""
    user = get_current_identity(db, scope)
    auth_service.change_password(db, user, payload.current_password, payload.new_password)
    return {"message": "Password changed successfully"}


@router.post("/companies", response_model=CompanyDetailOut, status_code=201)
async def create_company(
    payload: CompanyCreate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    """Create a company with its modules, a one-year license and its admin"""
    company = master_service.create_company(
        db,
        company_code=payload.company_code,
        name=payload.name,
        admin_username=payload.admin_username,
        admin_password=payload.admin_password,
        email=payload.email,
        contact_number=payload.contact_number,
        employee_limit=payload.employee_limit,
        branch_limit=payload.branch_limit,
        default_modules=payload.default_modules,
        actor_id=resolve_identity(db, scope),
    )
    return master_service.get_company_details(db, company.id)


@router.get("/companies", response_model=List[CompanyOut])
async def list_companies(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    return master_service.list_companies(db)


@router.get("/companies/{company_id}", response_model=CompanyDetailOut)
async def get_company(
    company_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    return master_service.get_company_details(db, company_id)


@router.get("/companies/{company_id}/users", response_model=List[EmployeeOut])
async def list_company_users(
    company_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    return master_service.list_company_users(db, company_id)


@router.post("/companies/{company_id}/reset-password", response_model=MessageResponse)
async def reset_company_password(
    company_id: int,
    payload: PasswordResetRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    """Reset the password of the company's primary admin"""
    master_service.reset_company_password(
        db, company_id, payload.new_password, actor_id=resolve_identity(db, scope)
    )
    return {"message": "Company password reset successfully"}


@router.post("/users/{user_id}/reset-password", response_model=MessageResponse)
async def reset_user_password(
    user_id: int,
    payload: PasswordResetRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    master_service.reset_user_password(db, user_id, payload.new_password, actor_id=resolve_identity(db, scope))
    return {"message": "Password reset successfully"}


@router.put("/companies/{company_id}", response_model=CompanyDetailOut)
async def update_company(
    company_id: int,
    payload: CompanyUpdate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    master_service.update_company(
        db, company_id, actor_id=resolve_identity(db, scope), **payload.model_dump(exclude_unset=True)
    )
    return master_service.get_company_details(db, company_id)


@router.put("/companies/{company_id}/modules/{module_name}", response_model=ModuleState)
async def toggle_company_module(
    company_id: int,
    module_name: str,
    payload: ModuleToggleRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    """Enable or disable a module for a company"""
    return company_service.set_company_module(
        db, company_id, module_name, payload.is_enabled, actor_id=resolve_identity(db, scope)
    )


@router.get("/licenses", response_model=List[LicenseOut])
async def list_licenses(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    return [_license_out(lic) for lic in license_service.list_licenses(db)]


@router.get("/licenses/company/{company_id}", response_model=LicenseOut)
async def get_company_license(
    company_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    return _license_out(license_service.get_license_for_company(db, company_id))


@router.put("/licenses/{license_id}", response_model=LicenseOut)
async def update_license(
    license_id: int,
    payload: LicenseDuration,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    """Restart a license from now with a new duration"""
    license = license_service.update_license(
        db, license_id, payload.duration_value, payload.duration_unit, actor_id=resolve_identity(db, scope)
    )
    return _license_out(license)


@router.post("/licenses/{license_id}/renew", response_model=LicenseOut)
async def renew_license(
    license_id: int,
    payload: LicenseDuration,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    """Extend a license from its current end date"""
    license = license_service.renew_license(
        db, license_id, payload.duration_value, payload.duration_unit, actor_id=resolve_identity(db, scope)
    )
    return _license_out(license)


@router.post("/licenses/refresh-states", response_model=LicenseRefreshResponse)
async def refresh_license_states(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(platform_only)
):
    """Deactivate expired licenses (daily job)"""
    touched = license_service.refresh_license_states(db)
    return {"updated_count": len(touched), "licenses": [_license_out(lic) for lic in touched]}


@router.post("/licenses/validate", response_model=LicenseValidateResponse)
async def validate_license(
    payload: LicenseValidateRequest,
    db: Session = Depends(get_db)
):
    """Public license check by company code"""
    return license_service.validate_license_by_code(db, payload.company_code)
