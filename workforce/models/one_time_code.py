"""
Expiring one-time codes (OTP store rows)
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from workforce.db.base import Base


class OneTimeCode(Base):
    __tablename__ = "one_time_codes"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, nullable=False, index=True)  # e.g. "otp:<identifier>"
    code_hash = Column(String, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
