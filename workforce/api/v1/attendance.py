"""
Attendance endpoints: check-in/out, status, history and geofence zones
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from workforce.core.constants import MODULE_ATTENDANCE
from workforce.core.deps import get_current_scope, get_db, require_module, require_tenant_roles
from workforce.models.attendance import AttendanceLog
from workforce.models.user import Role
from workforce.schemas.attendance import (
    AttendanceHistoryResponse,
    AttendanceStatusResponse,
    CheckInResponse,
    CheckOutResponse,
    CoordinateRequest,
    GeofenceZoneCreate,
    GeofenceZoneOut,
    GeofenceZoneUpdate,
)
from workforce.services import attendance_service, geofence_service
from workforce.services.permission_service import ModuleAction
from workforce.services.scope_service import TenantScope, get_current_identity

router = APIRouter()

zone_managers = require_tenant_roles(Role.COMPANY_ADMIN, Role.BRANCH_MANAGER)


def _geofence_out(status_value, zone, distance) -> dict:
    return {
        "status": status_value,
        "zone_id": zone.id if zone is not None else None,
        "zone_name": zone.name if zone is not None else None,
        "distance_meters": distance,
    }


@router.post("/checkin", response_model=CheckInResponse, status_code=201)
async def check_in(
    payload: CoordinateRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(require_module(MODULE_ATTENDANCE, ModuleAction.VIEW))
):
    """
    Check in at the given coordinate

    Only one open record per day is allowed; the geofence classification is
    captured with the record.
    """
    user = get_current_identity(db, scope)
    record: AttendanceLog = attendance_service.check_in(db, user, payload.latitude, payload.longitude)
    return {
        "message": "Checked in successfully",
        "attendance": record,
        "geofence": _geofence_out(record.check_in_status, record.check_in_zone, record.check_in_distance_m),
    }


@router.post("/checkout", response_model=CheckOutResponse)
async def check_out(
    payload: CoordinateRequest,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(require_module(MODULE_ATTENDANCE, ModuleAction.VIEW))
):
    """Close the caller's open record and report the worked duration"""
    user = get_current_identity(db, scope)
    record: AttendanceLog = attendance_service.check_out(db, user, payload.latitude, payload.longitude)
    return {
        "message": "Checked out successfully",
        "attendance": record,
        "geofence": _geofence_out(record.check_out_status, record.check_out_zone, record.check_out_distance_m),
        "duration": attendance_service.compute_duration(record.check_in_at, record.check_out_at),
    }


@router.get("/status/{employee_ref}", response_model=AttendanceStatusResponse)
async def get_status(
    employee_ref: str,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(get_current_scope)
):
    """Today's record and the last seven days' statistics"""
    target = attendance_service.resolve_attendance_subject(db, scope, employee_ref)
    return attendance_service.get_status(db, target.id)


@router.get("/history/{employee_ref}", response_model=AttendanceHistoryResponse)
async def get_history(
    employee_ref: str,
    days: int = Query(30, ge=1, le=attendance_service.MAX_HISTORY_DAYS),
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(get_current_scope)
):
    target = attendance_service.resolve_attendance_subject(db, scope, employee_ref)
    return {"records": attendance_service.get_history(db, target.id, days), "days": days}


# Geofence zones

@router.get("/geofence/zones", response_model=List[GeofenceZoneOut])
async def list_zones(
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(require_tenant_roles(Role.COMPANY_ADMIN, Role.BRANCH_MANAGER, Role.EMPLOYEE))
):
    return geofence_service.list_zones(db, scope)


@router.post("/geofence/zones", response_model=GeofenceZoneOut, status_code=201)
async def create_zone(
    payload: GeofenceZoneCreate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(zone_managers)
):
    return geofence_service.create_zone(
        db,
        scope,
        name=payload.name,
        latitude=payload.latitude,
        longitude=payload.longitude,
        radius_meters=payload.radius_meters,
        branch_id=payload.branch_id,
        description=payload.description,
    )


@router.put("/geofence/zones/{zone_id}", response_model=GeofenceZoneOut)
async def update_zone(
    zone_id: int,
    payload: GeofenceZoneUpdate,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(zone_managers)
):
    return geofence_service.update_zone(db, scope, zone_id, **payload.model_dump(exclude_unset=True))


@router.delete("/geofence/zones/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_zone(
    zone_id: int,
    db: Session = Depends(get_db),
    scope: TenantScope = Depends(zone_managers)
):
    geofence_service.delete_zone(db, scope, zone_id)
