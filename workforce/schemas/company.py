"""
Company-side schemas: info, branches, employees, modules
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from workforce.utils.datetime_utils import iso_local


class ModuleState(BaseModel):
    module_name: str
    is_enabled: bool

    model_config = ConfigDict(from_attributes=True)


class ModuleEntry(ModuleState):
    """Single shape returned for every caller of the module list"""
    can_view: bool
    can_modify: bool
    can_update: bool


class ModuleToggleRequest(BaseModel):
    is_enabled: bool


class CompanyInfoOut(BaseModel):
    id: int
    company_code: str
    name: str
    email: Optional[str] = None
    contact_number: Optional[str] = None
    is_active: bool
    employee_limit: int
    branch_limit: int
    employee_count: int
    branch_count: int
    modules: List[ModuleState]


class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None
    employee_limit: Optional[int] = Field(None, ge=1)


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    employee_limit: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class BranchOut(BaseModel):
    id: int
    company_id: int
    name: str
    address: Optional[str] = None
    is_active: bool
    employee_limit: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class EmployeeCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    employee_code: Optional[str] = None
    designation: Optional[str] = None
    role: str = "employee"
    branch_id: Optional[int] = None
    password: Optional[str] = None
    attendance_mode: str = "geofencing"


class EmployeeOut(BaseModel):
    id: int
    company_id: Optional[int] = None
    branch_id: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    employee_code: Optional[str] = None
    full_name: Optional[str] = None
    designation: Optional[str] = None
    role: str
    attendance_mode: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class AttendanceModeUpdate(BaseModel):
    attendance_mode: str


class PasswordResetRequest(BaseModel):
    new_password: str = Field(..., min_length=1)


class ManagerModuleGrant(BaseModel):
    module_name: str
    is_enabled: bool = True
    can_view: bool = True
    can_modify: bool = False
    can_update: bool = False


class ManagerModuleUpdate(BaseModel):
    is_enabled: Optional[bool] = None
    can_view: Optional[bool] = None
    can_modify: Optional[bool] = None
    can_update: Optional[bool] = None


class ManagerModuleOut(ManagerModuleGrant):
    id: int
    manager_id: int

    model_config = ConfigDict(from_attributes=True)


class ManagerModulesReplace(BaseModel):
    modules: List[ManagerModuleGrant]


class EmployeeModuleGrant(BaseModel):
    module_name: str
    access_level: str = "view"
    is_enabled: bool = True


class EmployeeModuleOut(EmployeeModuleGrant):
    id: int
    employee_id: int

    model_config = ConfigDict(from_attributes=True)


class EmployeeModulesReplace(BaseModel):
    modules: List[EmployeeModuleGrant]


class EmployeeGeofenceAssign(BaseModel):
    geofence_zone_id: int


class EmployeeGeofenceAssignmentOut(BaseModel):
    id: int
    user_id: int
    geofence_zone_id: int
    is_primary: bool

    model_config = ConfigDict(from_attributes=True)


class EmployeeZoneOut(BaseModel):
    """A company zone as seen for one employee"""
    id: int
    name: str
    branch_id: Optional[int] = None
    latitude: float
    longitude: float
    radius_meters: float
    description: Optional[str] = None
    is_active: bool
    is_assigned: bool
    is_primary: bool
