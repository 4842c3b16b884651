"""
Database models
"""
from workforce.models.company import Company, Branch
from workforce.models.user import User, Role, AttendanceMode
from workforce.models.module_access import (
    CompanyModule,
    BranchManagerModule,
    EmployeeModuleAccess,
    AccessLevel,
)
from workforce.models.license import License, DurationUnit
from workforce.models.geofence import GeofenceZone, EmployeeGeofenceZone
from workforce.models.attendance import AttendanceLog, GeofenceStatus
from workforce.models.one_time_code import OneTimeCode
from workforce.models.audit_log import AuditLog
from workforce.models.inventory import InventoryItem

__all__ = [
    "Company",
    "Branch",
    "User",
    "Role",
    "AttendanceMode",
    "CompanyModule",
    "BranchManagerModule",
    "EmployeeModuleAccess",
    "AccessLevel",
    "License",
    "DurationUnit",
    "GeofenceZone",
    "EmployeeGeofenceZone",
    "AttendanceLog",
    "GeofenceStatus",
    "OneTimeCode",
    "AuditLog",
    "InventoryItem",
]
