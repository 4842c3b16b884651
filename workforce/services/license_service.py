"""
License service - subscription validity and lifecycle for companies
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from workforce.core.errors import NotFoundError, ValidationError
from workforce.db.session import with_read_retry
from workforce.models.company import Company
from workforce.models.license import License, DurationUnit
from workforce.services.audit_service import log_audit
from workforce.utils.datetime_utils import add_months, ensure_utc, now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LicenseStatus:
    valid: bool
    remaining_days: int


def compute_end_date(start: datetime, duration_value: int, duration_unit: str) -> datetime:
    """
    End date for a duration starting at `start`.

    Raises:
        ValidationError: If the value is not positive or the unit is unknown
    """
    if duration_value is None or int(duration_value) <= 0:
        raise ValidationError("duration_value must be greater than 0", fields=["duration_value"])
    try:
        unit = DurationUnit(duration_unit)
    except ValueError:
        raise ValidationError('duration_unit must be either "months" or "years"', fields=["duration_unit"])

    months = int(duration_value) * (12 if unit == DurationUnit.YEARS else 1)
    return add_months(ensure_utc(start), months)


def evaluate_license(license: Optional[License], now: Optional[datetime] = None) -> LicenseStatus:
    """Valid iff the license exists, is active and has at least one remaining day."""
    if license is None:
        return LicenseStatus(valid=False, remaining_days=0)
    remaining = license.remaining_days(now or now_utc())
    return LicenseStatus(valid=bool(license.is_active) and remaining > 0, remaining_days=remaining)


@with_read_retry
def check_license(db: Session, company_id: int, now: Optional[datetime] = None) -> LicenseStatus:
    license = db.query(License).filter(License.company_id == company_id).first()
    return evaluate_license(license, now)


def create_default_license(db: Session, company: Company, now: Optional[datetime] = None) -> License:
    """One-year license starting now; joins the caller's transaction."""
    start = now or now_utc()
    license = License(
        company_id=company.id,
        start_date=start,
        duration_value=1,
        duration_unit=DurationUnit.YEARS.value,
        end_date=compute_end_date(start, 1, DurationUnit.YEARS.value),
        is_active=True,
    )
    db.add(license)
    db.flush()
    return license


def _get_license(db: Session, license_id: int) -> License:
    license = db.query(License).filter(License.id == license_id).first()
    if not license:
        raise NotFoundError("License not found")
    return license


def renew_license(
    db: Session,
    license_id: int,
    duration_value: int,
    duration_unit: str,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> License:
    """
    Extend a license by the given duration.

    The extension starts from the current end date (or now when the license
    has none) and re-activates the license.
    """
    license = _get_license(db, license_id)
    base = ensure_utc(license.end_date) if license.end_date else (now or now_utc())
    new_end = compute_end_date(base, duration_value, duration_unit)

    previous_end = license.end_date
    license.end_date = new_end
    license.duration_value = int(duration_value)
    license.duration_unit = DurationUnit(duration_unit).value
    license.is_active = True
    db.commit()
    db.refresh(license)

    logger.info("License %s renewed until %s", license.id, new_end.isoformat())
    log_audit(
        db=db,
        actor_id=actor_id,
        action="LICENSE_RENEW",
        entity_type="company_licenses",
        entity_id=license.id,
        company_id=license.company_id,
        meta={"previous_end_date": previous_end, "end_date": new_end, "duration_value": duration_value, "duration_unit": duration_unit},
    )
    return license


def update_license(
    db: Session,
    license_id: int,
    duration_value: int,
    duration_unit: str,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> License:
    """Restart a license: start becomes now, end becomes now + duration."""
    license = _get_license(db, license_id)
    start = now or now_utc()
    end = compute_end_date(start, duration_value, duration_unit)

    license.start_date = start
    license.end_date = end
    license.duration_value = int(duration_value)
    license.duration_unit = DurationUnit(duration_unit).value
    license.is_active = True
    db.commit()
    db.refresh(license)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="LICENSE_UPDATE",
        entity_type="company_licenses",
        entity_id=license.id,
        company_id=license.company_id,
        meta={"start_date": start, "end_date": end, "duration_value": duration_value, "duration_unit": duration_unit},
    )
    return license


def refresh_license_states(db: Session, now: Optional[datetime] = None) -> List[License]:
    """
    Deactivate every active license with no remaining days.

    Meant to be run daily. Returns the licenses that were deactivated.
    """
    now = now or now_utc()
    touched = []
    for license in db.query(License).filter(License.is_active.is_(True)).all():
        if license.remaining_days(now) <= 0:
            license.is_active = False
            touched.append(license)
    db.commit()
    for license in touched:
        db.refresh(license)
    if touched:
        logger.info("Deactivated %s expired license(s)", len(touched))
    return touched


@with_read_retry
def list_licenses(db: Session) -> List[License]:
    return db.query(License).order_by(License.created_at.desc(), License.id.desc()).all()


@with_read_retry
def get_license_for_company(db: Session, company_id: int) -> License:
    license = db.query(License).filter(License.company_id == company_id).first()
    if not license:
        raise NotFoundError("License not found for this company")
    return license


@with_read_retry
def validate_license_by_code(db: Session, company_code: str, now: Optional[datetime] = None) -> dict:
    """Public validity check keyed by company code."""
    company = db.query(Company).filter(Company.company_code == (company_code or "").strip().upper()).first()
    license = company.license if company else None
    if license is None:
        return {"is_valid": False, "remaining_days": 0, "message": "License not found"}

    result = evaluate_license(license, now)
    if not result.valid:
        return {"is_valid": False, "remaining_days": max(0, result.remaining_days), "message": "License has expired"}
    return {"is_valid": True, "remaining_days": result.remaining_days, "message": "License is valid"}
