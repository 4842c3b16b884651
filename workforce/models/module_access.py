"""
Module toggles and per-user module grants
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from workforce.db.base import Base


class AccessLevel(str, enum.Enum):
    VIEW = "view"
    MODIFY = "modify"


class CompanyModule(Base):
    """Company-wide toggle; a disabled module is unreachable for everyone in the company."""
    __tablename__ = "company_modules"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    module_name = Column(String, nullable=False)
    is_enabled = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "module_name", name="uq_company_module"),
    )

    company = relationship("Company", back_populates="modules")


class BranchManagerModule(Base):
    __tablename__ = "branch_manager_modules"

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    module_name = Column(String, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    can_view = Column(Boolean, default=True, nullable=False)
    can_modify = Column(Boolean, default=False, nullable=False)
    can_update = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("manager_id", "module_name", name="uq_branch_manager_module"),
    )

    manager = relationship("User", backref="manager_modules")


class EmployeeModuleAccess(Base):
    __tablename__ = "employee_module_access"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    module_name = Column(String, nullable=False)
    access_level = Column(String, nullable=False, default=AccessLevel.VIEW.value)
    is_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "module_name", name="uq_employee_module"),
    )

    employee = relationship("User", backref="module_access")
