"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Attendance calendar days are taken in the configured local zone (settings.ATTENDANCE_TZ).
"""
import calendar
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for check-in/out, license dates, created_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def local_zone() -> ZoneInfo:
    from workforce.core.config import settings
    return ZoneInfo(settings.ATTENDANCE_TZ)


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the configured local zone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(local_zone())


def local_date(dt: Optional[datetime] = None) -> date:
    """Calendar date of dt (default now) in the configured local zone."""
    return to_local(dt or now_utc()).date()


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with the local offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def add_months(dt: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month (Jan 31 + 1 -> Feb 28/29)."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
