"""
Authentication schemas
"""
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class LoginRequest(BaseModel):
    """Login request schema (email or phone + password)"""
    username: str = Field(..., min_length=1, description="Email or phone")
    password: str = Field(..., min_length=1, description="Password")


class CompanyLoginRequest(BaseModel):
    company_code: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1, description="Email, phone or employee code")
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class OtpRequest(BaseModel):
    """Either username or phone identifies the user"""
    username: Optional[str] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def _require_target(self):
        if not (self.username or self.phone):
            raise ValueError("username or phone required")
        return self

    @property
    def target(self) -> str:
        return self.username or self.phone


class OtpVerifyRequest(OtpRequest):
    otp: str = Field(..., min_length=1)


class OtpResetPasswordRequest(BaseModel):
    username: str = Field(..., min_length=1)
    otp: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class TokenClaims(BaseModel):
    sub: str
    role: str
    company_id: Optional[int] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    user_id: Optional[int] = None


class TokenResponse(BaseModel):
    """Token response schema"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: TokenClaims


class CompanyRef(BaseModel):
    id: int
    company_code: str
    name: str


class CompanyTokenResponse(TokenResponse):
    company: CompanyRef


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    message: str
