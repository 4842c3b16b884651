"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from workforce.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # NULL for system jobs
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    action = Column(String, nullable=False)  # e.g., "ATTENDANCE_CHECK_IN", "MODULES_REPLACE"
    entity_type = Column(String, nullable=False)  # e.g., "attendance_logs", "company_licenses"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    # Set explicitly by log_audit; server defaults differ between SQLite and PostgreSQL
    created_at = Column(DateTime(timezone=True), nullable=False)
