"""
Company (tenant root) and Branch models
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from workforce.db.base import Base
from workforce.utils.identifiers import normalize_company_code


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    company_code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    contact_number = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    employee_limit = Column(Integer, nullable=False, default=50)
    branch_limit = Column(Integer, nullable=False, default=10)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    branches = relationship("Branch", back_populates="company", cascade="all, delete-orphan")
    modules = relationship("CompanyModule", back_populates="company", cascade="all, delete-orphan")
    license = relationship("License", back_populates="company", uselist=False, cascade="all, delete-orphan")

    @validates("company_code")
    def _normalize_code(self, key, value):
        return normalize_company_code(value)


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    # Lower-cased copy of name; enforces case-insensitive uniqueness per company
    name_key = Column(String, nullable=False)
    address = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    employee_limit = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "name_key", name="uq_branch_company_name"),
    )

    company = relationship("Company", back_populates="branches")

    @validates("name")
    def _sync_name_key(self, key, value):
        self.name_key = (value or "").strip().lower()
        return value.strip() if value else value
