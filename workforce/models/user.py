"""
User model (employees, branch managers, company admins and platform operators)
"""
from typing import Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
import enum
from workforce.db.base import Base
from workforce.utils.identifiers import normalize_identifier


class Role(str, enum.Enum):
    MASTER = "master"
    ADMIN = "admin"
    COMPANY_ADMIN = "company_admin"
    BRANCH_MANAGER = "branch_manager"
    EMPLOYEE = "employee"

    @classmethod
    def parse(cls, value) -> "Role":
        """
        Parse a stored or claimed role string.

        The legacy value "manager" maps to BRANCH_MANAGER. Unknown values
        raise ValueError.
        """
        if isinstance(value, Role):
            return value
        raw = (str(value) if value is not None else "").strip().lower()
        if raw == "manager":
            return cls.BRANCH_MANAGER
        return cls(raw)

    @property
    def is_platform(self) -> bool:
        return self in (Role.MASTER, Role.ADMIN)


class AttendanceMode(str, enum.Enum):
    GEOFENCING = "geofencing"
    LOCATION_TRACKING = "location_tracking"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    email = Column(String, unique=True, nullable=True, index=True)
    phone = Column(String, unique=True, nullable=True, index=True)
    employee_code = Column(String, nullable=True, index=True)
    full_name = Column(String, nullable=True)
    designation = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)
    role = Column(String, nullable=False, default=Role.EMPLOYEE.value)
    attendance_mode = Column(String, nullable=False, default=AttendanceMode.GEOFENCING.value)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "employee_code", name="uq_user_company_employee_code"),
    )

    company = relationship("Company", backref="users")
    branch = relationship("Branch", backref="users")

    @validates("email", "phone", "employee_code")
    def _normalize_identifier(self, key, value):
        return normalize_identifier(value)

    @validates("role")
    def _normalize_role(self, key, value):
        return Role.parse(value).value

    @property
    def role_enum(self) -> Role:
        return Role.parse(self.role)

    @property
    def subject(self) -> Optional[str]:
        """Primary login identifier used as the token subject"""
        return self.email or self.phone or self.employee_code
