"""
Configuration management for the workforce backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="PostgreSQL database URL")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key for token signing")

    # Token lifetimes
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_ACCESS_EXPIRE_MINUTES: int = Field(default=15, gt=0, description="Access token expiration in minutes")
    JWT_REFRESH_EXPIRE_DAYS: int = Field(default=30, gt=0, description="Refresh token expiration in days")

    # One-time codes
    OTP_EXPIRY_SECONDS: int = Field(default=300, gt=0, description="Lifetime of a one-time login code")
    OTP_LENGTH: int = Field(default=6, ge=4, le=10, description="Number of digits in a one-time code")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Local reference for attendance calendar days (storage stays UTC)
    ATTENDANCE_TZ: str = Field(default="Asia/Kolkata", description="Timezone that defines an attendance calendar day")

    # Store call bounds
    DB_POOL_TIMEOUT_SECONDS: int = Field(default=10, gt=0, description="Seconds to wait for a pooled connection")
    DB_STATEMENT_TIMEOUT_MS: int = Field(default=15000, gt=0, description="PostgreSQL statement_timeout in milliseconds")
    DB_READ_RETRIES: int = Field(default=1, ge=0, le=5, description="Retries for idempotent reads on connection errors")

    # Tenant capacity defaults used when the master operator does not set them
    DEFAULT_EMPLOYEE_LIMIT: int = Field(default=50, gt=0)
    DEFAULT_BRANCH_LIMIT: int = Field(default=10, gt=0)

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    # Initial master operator bootstrap
    INITIAL_MASTER_USERNAME: str = Field(
        default="master@platform.local",
        description="Login of the first master operator (used when no master exists)"
    )
    INITIAL_MASTER_PASSWORD: str = Field(
        default="Master@12345",
        description="Password for the first master operator (used when no master exists)"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("ATTENDANCE_TZ")
    @classmethod
    def validate_tz(cls, v: str) -> str:
        """Reject unknown IANA zone names early"""
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"ATTENDANCE_TZ '{v}' is not a known timezone")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
