"""
Master (platform operator) schemas: companies and licenses
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from workforce.schemas.company import ModuleState
from workforce.utils.datetime_utils import iso_local


class CompanyCreate(BaseModel):
    company_code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    admin_username: str = Field(..., min_length=1, description="Email or phone of the company admin")
    admin_password: str = Field(..., min_length=1)
    email: Optional[str] = None
    contact_number: Optional[str] = None
    employee_limit: Optional[int] = Field(None, ge=1)
    branch_limit: Optional[int] = Field(None, ge=1)
    default_modules: List[str] = Field(default_factory=list)


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    contact_number: Optional[str] = None
    is_active: Optional[bool] = None
    employee_limit: Optional[int] = Field(None, ge=1)
    branch_limit: Optional[int] = Field(None, ge=1)


class CompanyOut(BaseModel):
    id: int
    company_code: str
    name: str
    email: Optional[str] = None
    contact_number: Optional[str] = None
    is_active: bool
    employee_limit: int
    branch_limit: int
    employee_count: int = 0
    license_valid: bool = False
    remaining_days: int = 0
    created_at: Optional[datetime] = None

    @field_serializer("created_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class CompanyAdminOut(BaseModel):
    id: int
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    is_active: bool


class CompanyDetailOut(CompanyOut):
    modules: List[ModuleState]
    admins: List[CompanyAdminOut]


class LicenseDuration(BaseModel):
    """Duration is validated by the license service so the error uses the app's format"""
    duration_value: int
    duration_unit: str


class LicenseOut(BaseModel):
    id: int
    company_id: int
    start_date: datetime
    duration_value: int
    duration_unit: str
    end_date: Optional[datetime] = None
    is_active: bool
    remaining_days: int = 0

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_date", "end_date", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class LicenseRefreshResponse(BaseModel):
    updated_count: int
    licenses: List[LicenseOut]


class LicenseValidateRequest(BaseModel):
    company_code: str = Field(..., min_length=1)


class LicenseValidateResponse(BaseModel):
    is_valid: bool
    remaining_days: int
    message: str
