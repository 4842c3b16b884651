"""
Audit logging service
"""
from sqlalchemy.orm import Session
from workforce.models.audit_log import AuditLog
from workforce.utils.datetime_utils import now_utc
from workforce.utils.json_serializer import sanitize_for_json
from typing import Optional, Dict, Any


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
    company_id: Optional[int] = None,
    commit: bool = True,
) -> AuditLog:
    """
    Create an audit log entry

    Args:
        db: Database session
        actor_id: ID of the user performing the action (None for system jobs)
        action: Action type (e.g., "ATTENDANCE_CHECK_IN", "LICENSE_RENEW")
        entity_type: Type of entity (e.g., "attendance_logs", "company_licenses")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)
        company_id: Tenant the entry belongs to (optional)
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        Created AuditLog instance
    """
    safe_meta = sanitize_for_json(meta) if meta is not None else None

    audit_log = AuditLog(
        actor_id=actor_id,
        company_id=company_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=safe_meta,
        created_at=now_utc(),
    )
    db.add(audit_log)
    if commit:
        db.commit()
        db.refresh(audit_log)
    else:
        db.flush()
    return audit_log
