"""
Audit metadata serialization

Audit rows keep their metadata in a JSON column. Timestamps are written in
UTC (naive values are taken to be UTC already), calendar days as plain ISO
dates and enums such as Role or GeofenceStatus by value.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from workforce.utils.datetime_utils import ensure_utc


def to_json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, BaseModel):
        return to_json_safe(value.model_dump())
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_safe(item) for item in value]
    return str(value)


def sanitize_for_json(meta: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Prepare a metadata dict for audit_logs.meta_json; empty dicts are stored as NULL."""
    if not meta:
        return None
    return to_json_safe(meta)
