"""
Service-wide constants
"""

SERVICE_NAME = "workforce-backend"

# Feature areas that can be toggled per company
MODULE_INVENTORY = "inventory"
MODULE_EMPLOYEE_MANAGEMENT = "employee_management"
MODULE_PAYROLL = "payroll"
MODULE_ATTENDANCE = "attendance"
MODULE_LEAVE = "leave"
MODULE_GEOFENCING = "geofencing"
MODULE_ONBOARDING = "onboarding"
MODULE_SUPPORT = "support"
MODULE_DOCUMENTS = "documents"

ALL_MODULES = (
    MODULE_INVENTORY,
    MODULE_EMPLOYEE_MANAGEMENT,
    MODULE_PAYROLL,
    MODULE_ATTENDANCE,
    MODULE_LEAVE,
    MODULE_GEOFENCING,
    MODULE_ONBOARDING,
    MODULE_SUPPORT,
    MODULE_DOCUMENTS,
)

EARTH_RADIUS_M = 6371000.0
SECONDS_PER_DAY = 86400
