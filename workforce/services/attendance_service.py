"""
Attendance service - check-in/check-out state machine and attendance queries
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workforce.core.errors import AlreadyCheckedIn, NoActiveCheckIn, NotFoundError, ValidationError
from workforce.db.session import with_read_retry
from workforce.models.attendance import AttendanceLog, GeofenceStatus
from workforce.models.user import User, Role
from workforce.services.audit_service import log_audit
from workforce.services.geofence_service import classify
from workforce.services.scope_service import TenantScope, get_current_identity, resolve_employee_reference
from workforce.utils.datetime_utils import ensure_utc, local_date, now_utc

logger = logging.getLogger(__name__)

STATS_WINDOW_DAYS = 7
MAX_HISTORY_DAYS = 365


def compute_duration(check_in_at: datetime, check_out_at: datetime) -> Dict[str, Union[int, float]]:
    """
    Worked duration between check-in and check-out.

    minutes = round(seconds / 60), hours = round(minutes / 60, 2); never negative.
    """
    seconds = (ensure_utc(check_out_at) - ensure_utc(check_in_at)).total_seconds()
    minutes = max(0, int(round(seconds / 60)))
    return {"minutes": minutes, "hours": round(minutes / 60, 2)}


def _open_record(db: Session, user_id: int, work_dates: List[date]) -> Optional[AttendanceLog]:
    return db.query(AttendanceLog).filter(
        AttendanceLog.user_id == user_id,
        AttendanceLog.work_date.in_(work_dates),
        AttendanceLog.check_out_at.is_(None),
    ).order_by(AttendanceLog.check_in_at.desc(), AttendanceLog.id.desc()).first()


def check_in(
    db: Session,
    user: User,
    lat: float,
    lng: float,
    now: Optional[datetime] = None,
) -> AttendanceLog:
    """
    Open today's attendance record for `user`.

    Raises:
        AlreadyCheckedIn: If an open record already exists for today
    """
    now = ensure_utc(now) if now else now_utc()
    work_date = local_date(now)

    if _open_record(db, user.id, [work_date]):
        raise AlreadyCheckedIn()

    geofence = classify(db, lat, lng, user.company_id, user.branch_id)

    attendance_log = AttendanceLog(
        user_id=user.id,
        company_id=user.company_id,
        branch_id=user.branch_id,
        work_date=work_date,
        check_in_at=now,
        check_in_lat=lat,
        check_in_lng=lng,
        check_in_status=geofence.status.value,
        check_in_zone_id=geofence.zone_id,
        check_in_distance_m=geofence.distance_meters,
    )
    db.add(attendance_log)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent check-in won the open-record index
        db.rollback()
        raise AlreadyCheckedIn()
    db.refresh(attendance_log)

    logger.info("User %s checked in for %s (%s)", user.id, work_date, geofence.status.value)
    log_audit(
        db=db,
        actor_id=user.id,
        action="ATTENDANCE_CHECK_IN",
        entity_type="attendance_logs",
        entity_id=attendance_log.id,
        company_id=user.company_id,
        meta={
            "work_date": work_date,
            "lat": lat,
            "lng": lng,
            "geofence_status": geofence.status,
            "zone_id": geofence.zone_id,
        },
    )
    return attendance_log


def check_out(
    db: Session,
    user: User,
    lat: float,
    lng: float,
    now: Optional[datetime] = None,
) -> AttendanceLog:
    """
    Close the caller's open record.

    The open record may belong to today or to the previous calendar day
    (overnight shifts close the check-in day's record).

    Raises:
        NoActiveCheckIn: If there is no open record to close
    """
    now = ensure_utc(now) if now else now_utc()
    today = local_date(now)

    attendance_log = _open_record(db, user.id, [today, today - timedelta(days=1)])
    if attendance_log is None:
        raise NoActiveCheckIn()

    geofence = classify(db, lat, lng, user.company_id, user.branch_id)

    # Conditional update so two concurrent check-outs cannot both close it
    updated = db.query(AttendanceLog).filter(
        AttendanceLog.id == attendance_log.id,
        AttendanceLog.check_out_at.is_(None),
    ).update(
        {
            AttendanceLog.check_out_at: now,
            AttendanceLog.check_out_lat: lat,
            AttendanceLog.check_out_lng: lng,
            AttendanceLog.check_out_status: geofence.status.value,
            AttendanceLog.check_out_zone_id: geofence.zone_id,
            AttendanceLog.check_out_distance_m: geofence.distance_meters,
        },
        synchronize_session=False,
    )
    if updated == 0:
        db.rollback()
        raise NoActiveCheckIn()
    db.commit()
    db.refresh(attendance_log)

    duration = compute_duration(attendance_log.check_in_at, attendance_log.check_out_at)
    logger.info("User %s checked out of %s after %s minute(s)", user.id, attendance_log.work_date, duration["minutes"])
    log_audit(
        db=db,
        actor_id=user.id,
        action="ATTENDANCE_CHECK_OUT",
        entity_type="attendance_logs",
        entity_id=attendance_log.id,
        company_id=user.company_id,
        meta={
            "work_date": attendance_log.work_date,
            "lat": lat,
            "lng": lng,
            "geofence_status": geofence.status,
            "zone_id": geofence.zone_id,
            "duration_minutes": duration["minutes"],
        },
    )
    return attendance_log


def resolve_attendance_subject(db: Session, scope: TenantScope, employee_ref: str) -> User:
    """
    Resolve whose attendance the caller is asking about.

    Callers may read their own records; platform operators may read anyone's;
    company admins anyone in their company; branch managers anyone in their
    branch. Everything else is reported as not found.
    """
    caller = get_current_identity(db, scope)
    target = resolve_employee_reference(db, scope, employee_ref)
    if target is None:
        raise NotFoundError("User not found")

    if target.id == caller.id or scope.is_platform:
        return target
    if scope.role == Role.COMPANY_ADMIN and target.company_id == caller.company_id:
        return target
    if (
        scope.role == Role.BRANCH_MANAGER
        and target.company_id == caller.company_id
        and caller.branch_id is not None
        and target.branch_id == caller.branch_id
    ):
        return target

    logger.info("User %s denied attendance of user %s", caller.id, target.id)
    raise NotFoundError("User not found")


@with_read_retry
def get_status(db: Session, user_id: int, now: Optional[datetime] = None) -> dict:
    """Today's latest record plus check-in statistics for the last seven days."""
    now = ensure_utc(now) if now else now_utc()

    today = db.query(AttendanceLog).filter(
        AttendanceLog.user_id == user_id,
        AttendanceLog.work_date == local_date(now),
    ).order_by(AttendanceLog.check_in_at.desc(), AttendanceLog.id.desc()).first()

    recent = db.query(AttendanceLog).filter(
        AttendanceLog.user_id == user_id,
        AttendanceLog.check_in_at >= now - timedelta(days=STATS_WINDOW_DAYS),
    ).all()

    stats = {
        "total_days": len(recent),
        "complete_days": sum(1 for r in recent if r.check_out_at is not None),
        "inside_checkins": sum(1 for r in recent if r.check_in_status == GeofenceStatus.INSIDE.value),
        "outside_checkins": sum(1 for r in recent if r.check_in_status == GeofenceStatus.OUTSIDE.value),
    }
    return {"today": today, "stats": stats}


@with_read_retry
def get_history(db: Session, user_id: int, days: int = 30, now: Optional[datetime] = None) -> List[AttendanceLog]:
    """Records checked in within the last `days` days, newest first."""
    if days < 1 or days > MAX_HISTORY_DAYS:
        raise ValidationError(f"days must be between 1 and {MAX_HISTORY_DAYS}", fields=["days"])
    now = ensure_utc(now) if now else now_utc()

    return db.query(AttendanceLog).filter(
        AttendanceLog.user_id == user_id,
        AttendanceLog.check_in_at >= now - timedelta(days=days),
    ).order_by(AttendanceLog.check_in_at.desc(), AttendanceLog.id.desc()).all()
