"""
Attendance log model
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Float, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from workforce.db.base import Base


class GeofenceStatus(str, enum.Enum):
    INSIDE = "inside"
    OUTSIDE = "outside"
    UNCHECKED = "unchecked"  # classification failed; attendance still recorded


class AttendanceLog(Base):
    __tablename__ = "attendance_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    work_date = Column(Date, nullable=False, index=True)  # Calendar date of check-in in settings.ATTENDANCE_TZ
    check_in_at = Column(DateTime(timezone=True), nullable=False)
    check_in_lat = Column(Float, nullable=False)
    check_in_lng = Column(Float, nullable=False)
    check_in_status = Column(String, nullable=False, default=GeofenceStatus.UNCHECKED.value)
    check_in_zone_id = Column(Integer, ForeignKey("geofence_zones.id", ondelete="SET NULL"), nullable=True)
    check_in_distance_m = Column(Float, nullable=True)
    check_out_at = Column(DateTime(timezone=True), nullable=True)
    check_out_lat = Column(Float, nullable=True)
    check_out_lng = Column(Float, nullable=True)
    check_out_status = Column(String, nullable=True)
    check_out_zone_id = Column(Integer, ForeignKey("geofence_zones.id", ondelete="SET NULL"), nullable=True)
    check_out_distance_m = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        # At most one open record per user and work date
        Index(
            "uq_attendance_open_per_day",
            "user_id",
            "work_date",
            unique=True,
            sqlite_where=text("check_out_at IS NULL"),
            postgresql_where=text("check_out_at IS NULL"),
        ),
    )

    user = relationship("User", backref="attendance_logs")
    check_in_zone = relationship("GeofenceZone", foreign_keys=[check_in_zone_id])
    check_out_zone = relationship("GeofenceZone", foreign_keys=[check_out_zone_id])
