"""
Geofence engine - distance computation, zone classification and zone management
"""
import logging
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workforce.core.constants import EARTH_RADIUS_M, MODULE_GEOFENCING
from workforce.core.errors import AuthorizationError, NotFoundError, ValidationError
from workforce.db.session import with_read_retry
from workforce.models.attendance import GeofenceStatus
from workforce.models.company import Branch
from workforce.models.geofence import EmployeeGeofenceZone, GeofenceZone
from workforce.models.user import Role
from workforce.services.audit_service import log_audit
from workforce.services.company_service import get_employee
from workforce.services.permission_service import ModuleAction, enforce
from workforce.services.scope_service import TenantScope, resolve_identity

logger = logging.getLogger(__name__)


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two WGS84 points."""
    lat1_rad = radians(lat1)
    lon1_rad = radians(lon1)
    lat2_rad = radians(lat2)
    lon2_rad = radians(lon2)

    delta_lat = lat2_rad - lat1_rad
    delta_lon = lon2_rad - lon1_rad

    a = sin(delta_lat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(delta_lon / 2) ** 2
    # Rounding can push a slightly above 1 for antipodal points
    c = 2 * asin(sqrt(min(1.0, a)))
    return EARTH_RADIUS_M * c


@dataclass(frozen=True)
class GeofenceResult:
    status: GeofenceStatus
    zone_id: Optional[int] = None
    zone_name: Optional[str] = None
    distance_meters: Optional[float] = None

    @property
    def is_inside(self) -> bool:
        return self.status == GeofenceStatus.INSIDE


def _zone_scope_query(db: Session, company_id: Optional[int], branch_id: Optional[int]):
    query = db.query(GeofenceZone).filter(GeofenceZone.company_id == company_id)
    if branch_id is None:
        return query.filter(GeofenceZone.branch_id.is_(None))
    return query.filter(or_(GeofenceZone.branch_id.is_(None), GeofenceZone.branch_id == branch_id))


def classify_against(zones: List[GeofenceZone], lat: float, lng: float) -> GeofenceResult:
    """First zone (in the given order) containing the point wins."""
    for zone in zones:
        distance = haversine_distance_m(lat, lng, zone.latitude, zone.longitude)
        if distance <= zone.radius_meters:
            return GeofenceResult(GeofenceStatus.INSIDE, zone.id, zone.name, round(distance, 2))
    return GeofenceResult(GeofenceStatus.OUTSIDE)


def classify(
    db: Session,
    lat: float,
    lng: float,
    company_id: Optional[int],
    branch_id: Optional[int] = None,
) -> GeofenceResult:
    """
    Classify a coordinate against the active zones visible to a branch.

    A store failure degrades to UNCHECKED instead of failing the caller.
    """
    try:
        zones = (
            _zone_scope_query(db, company_id, branch_id)
            .filter(GeofenceZone.is_active.is_(True))
            .order_by(GeofenceZone.id)
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Geofence lookup failed for company %s, recording as unchecked: %s", company_id, e)
        return GeofenceResult(GeofenceStatus.UNCHECKED)

    return classify_against(zones, lat, lng)


# Zone management

def _validate_zone_values(latitude=None, longitude=None, radius_meters=None) -> None:
    fields = []
    if latitude is not None and not -90 <= latitude <= 90:
        fields.append("latitude")
    if longitude is not None and not -180 <= longitude <= 180:
        fields.append("longitude")
    if radius_meters is not None and radius_meters <= 0:
        fields.append("radius_meters")
    if fields:
        raise ValidationError("Invalid geofence zone values", fields=fields)


def _assert_can_manage(db: Session, scope: TenantScope, branch_id: Optional[int], action: ModuleAction) -> None:
    if scope.role == Role.COMPANY_ADMIN:
        return
    if scope.role == Role.BRANCH_MANAGER:
        if branch_id is None:
            # Company-wide zones belong to the company admin
            raise AuthorizationError()
        enforce(db, scope, MODULE_GEOFENCING, action, resource_branch_id=branch_id)
        return
    raise AuthorizationError()


def _get_branch(db: Session, company_id: int, branch_id: int) -> Branch:
    branch = db.query(Branch).filter(Branch.id == branch_id, Branch.company_id == company_id).first()
    if not branch:
        raise NotFoundError("Branch not found")
    return branch


def _get_zone(db: Session, scope: TenantScope, zone_id: int) -> GeofenceZone:
    zone = db.query(GeofenceZone).filter(
        GeofenceZone.id == zone_id,
        GeofenceZone.company_id == scope.company_id,
    ).first()
    if not zone:
        raise NotFoundError("Geofence zone not found")
    return zone


@with_read_retry
def list_zones(db: Session, scope: TenantScope, include_inactive: bool = False) -> List[GeofenceZone]:
    """
    Zones visible to the caller.

    Company admins see every zone of the company; everyone else sees
    company-wide zones plus their own branch's zones.
    """
    if scope.role == Role.COMPANY_ADMIN:
        query = db.query(GeofenceZone).filter(GeofenceZone.company_id == scope.company_id)
    else:
        query = _zone_scope_query(db, scope.company_id, scope.branch_id)
    if not include_inactive:
        query = query.filter(GeofenceZone.is_active.is_(True))
    return query.order_by(GeofenceZone.id).all()


def create_zone(
    db: Session,
    scope: TenantScope,
    name: str,
    latitude: float,
    longitude: float,
    radius_meters: float,
    branch_id: Optional[int] = None,
    description: Optional[str] = None,
) -> GeofenceZone:
    if scope.role == Role.BRANCH_MANAGER and branch_id is None:
        branch_id = scope.branch_id
    _validate_zone_values(latitude, longitude, radius_meters)
    if branch_id is not None:
        _get_branch(db, scope.company_id, branch_id)
    _assert_can_manage(db, scope, branch_id, ModuleAction.MODIFY)

    zone = GeofenceZone(
        company_id=scope.company_id,
        branch_id=branch_id,
        name=name.strip(),
        latitude=latitude,
        longitude=longitude,
        radius_meters=radius_meters,
        description=description,
        is_active=True,
    )
    db.add(zone)
    db.commit()
    db.refresh(zone)

    log_audit(
        db=db,
        actor_id=resolve_identity(db, scope),
        action="CREATE",
        entity_type="geofence_zones",
        entity_id=zone.id,
        company_id=scope.company_id,
        meta={"name": zone.name, "branch_id": branch_id, "radius_meters": radius_meters},
    )
    return zone


def update_zone(db: Session, scope: TenantScope, zone_id: int, **changes) -> GeofenceZone:
    """Apply the non-None values in `changes` to a zone of the caller's company."""
    zone = _get_zone(db, scope, zone_id)
    _assert_can_manage(db, scope, zone.branch_id, ModuleAction.UPDATE)

    changes = {k: v for k, v in changes.items() if v is not None}
    _validate_zone_values(changes.get("latitude"), changes.get("longitude"), changes.get("radius_meters"))
    if "branch_id" in changes:
        _get_branch(db, scope.company_id, changes["branch_id"])
        _assert_can_manage(db, scope, changes["branch_id"], ModuleAction.UPDATE)

    for field in ("name", "latitude", "longitude", "radius_meters", "description", "is_active", "branch_id"):
        if field in changes:
            setattr(zone, field, changes[field])
    db.commit()
    db.refresh(zone)

    log_audit(
        db=db,
        actor_id=resolve_identity(db, scope),
        action="UPDATE",
        entity_type="geofence_zones",
        entity_id=zone.id,
        company_id=scope.company_id,
        meta=changes,
    )
    return zone


def delete_zone(db: Session, scope: TenantScope, zone_id: int) -> None:
    zone = _get_zone(db, scope, zone_id)
    _assert_can_manage(db, scope, zone.branch_id, ModuleAction.UPDATE)

    meta = {"name": zone.name, "branch_id": zone.branch_id}
    db.delete(zone)
    db.commit()

    log_audit(
        db=db,
        actor_id=resolve_identity(db, scope),
        action="DELETE",
        entity_type="geofence_zones",
        entity_id=zone_id,
        company_id=scope.company_id,
        meta=meta,
    )


# Employee zone assignments

def _get_company_zone(db: Session, company_id: int, zone_id: int) -> GeofenceZone:
    zone = db.query(GeofenceZone).filter(
        GeofenceZone.id == zone_id,
        GeofenceZone.company_id == company_id,
    ).first()
    if not zone:
        raise NotFoundError("Geofence zone not found")
    return zone


def assign_employee_zone(
    db: Session,
    company_id: int,
    employee_id: int,
    zone_id: int,
    actor_id: Optional[int] = None,
) -> EmployeeGeofenceZone:
    """Assign a zone to an employee; assigning it again only re-marks it primary."""
    employee = get_employee(db, company_id, employee_id)
    zone = _get_company_zone(db, company_id, zone_id)

    assignment = db.query(EmployeeGeofenceZone).filter(
        EmployeeGeofenceZone.user_id == employee.id,
        EmployeeGeofenceZone.geofence_zone_id == zone.id,
    ).first()
    if assignment is None:
        assignment = EmployeeGeofenceZone(user_id=employee.id, geofence_zone_id=zone.id)
        db.add(assignment)
    assignment.is_primary = True
    db.commit()
    db.refresh(assignment)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="ASSIGN_GEOFENCE",
        entity_type="employee_geofence_zones",
        entity_id=assignment.id,
        company_id=company_id,
        meta={"user_id": employee.id, "geofence_zone_id": zone.id},
    )
    return assignment


@with_read_retry
def list_employee_zones(db: Session, company_id: int, employee_id: int) -> List[Dict[str, Any]]:
    """
    Every zone of the company, flagged with the employee's assignments.

    Assigned zones come first, then zones by name.
    """
    employee = get_employee(db, company_id, employee_id)
    assignments = {
        a.geofence_zone_id: a
        for a in db.query(EmployeeGeofenceZone).filter(EmployeeGeofenceZone.user_id == employee.id).all()
    }
    zones = db.query(GeofenceZone).filter(GeofenceZone.company_id == company_id).all()

    entries = []
    for zone in zones:
        assignment = assignments.get(zone.id)
        entries.append({
            "id": zone.id,
            "name": zone.name,
            "branch_id": zone.branch_id,
            "latitude": zone.latitude,
            "longitude": zone.longitude,
            "radius_meters": zone.radius_meters,
            "description": zone.description,
            "is_active": zone.is_active,
            "is_assigned": assignment is not None,
            "is_primary": bool(assignment.is_primary) if assignment is not None else False,
        })
    entries.sort(key=lambda e: (not e["is_assigned"], e["name"].lower(), e["id"]))
    return entries


def remove_employee_zone(
    db: Session,
    company_id: int,
    employee_id: int,
    zone_id: int,
    actor_id: Optional[int] = None,
) -> None:
    employee = get_employee(db, company_id, employee_id)
    zone = _get_company_zone(db, company_id, zone_id)

    deleted = db.query(EmployeeGeofenceZone).filter(
        EmployeeGeofenceZone.user_id == employee.id,
        EmployeeGeofenceZone.geofence_zone_id == zone.id,
    ).delete(synchronize_session=False)
    if not deleted:
        db.rollback()
        raise NotFoundError("Assignment not found")
    db.commit()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="REMOVE_GEOFENCE",
        entity_type="employee_geofence_zones",
        entity_id=None,
        company_id=company_id,
        meta={"user_id": employee.id, "geofence_zone_id": zone.id},
    )
