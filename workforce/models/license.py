"""
Company license model
"""
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from workforce.core.constants import SECONDS_PER_DAY
from workforce.db.base import Base
from workforce.utils.datetime_utils import ensure_utc, now_utc


class DurationUnit(str, enum.Enum):
    MONTHS = "months"
    YEARS = "years"


class License(Base):
    __tablename__ = "company_licenses"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), unique=True, nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    duration_value = Column(Integer, nullable=False)
    duration_unit = Column(String, nullable=False, default=DurationUnit.YEARS.value)
    end_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    company = relationship("Company", back_populates="license")

    def remaining_days(self, now: Optional[datetime] = None) -> int:
        """ceil((end_date - now) / 1 day); 0 when no end date is set."""
        if self.end_date is None:
            return 0
        delta = ensure_utc(self.end_date) - (now or now_utc())
        return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)
