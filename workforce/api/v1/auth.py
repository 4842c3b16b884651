"""
Authentication endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from workforce.core.deps import get_db
from workforce.schemas.auth import (
    LoginRequest,
    MessageResponse,
    OtpRequest,
    OtpResetPasswordRequest,
    OtpVerifyRequest,
    RefreshRequest,
    TokenResponse,
)
from workforce.services import auth_service, otp_service

router = APIRouter()


@router.post("/request-otp", response_model=MessageResponse)
async def request_otp(
    payload: OtpRequest,
    db: Session = Depends(get_db)
):
    """Send a one-time code to the user identified by email or phone"""
    otp_service.request_otp(db, payload.target)
    return {"message": "OTP sent"}


@router.post("/verify-otp", response_model=TokenResponse)
async def verify_otp(
    payload: OtpVerifyRequest,
    db: Session = Depends(get_db)
):
    """Exchange a valid one-time code for a token pair"""
    user = otp_service.consume_otp(db, payload.target, payload.otp)
    return auth_service.issue_tokens(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate with email/phone and password

    Users of a company are refused when the company is inactive or its
    license has expired.
    """
    return auth_service.login(db, login_data.username, login_data.password)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    payload: RefreshRequest,
    db: Session = Depends(get_db)
):
    """Mint a new access token from a refresh token"""
    return auth_service.refresh(db, payload.refresh_token)


@router.post("/reset-password-otp", response_model=TokenResponse)
async def reset_password_otp(
    payload: OtpResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """Set a new password using a one-time code; returns a fresh token pair"""
    user = otp_service.reset_password_with_otp(db, payload.username, payload.otp, payload.new_password)
    return auth_service.issue_tokens(user)
