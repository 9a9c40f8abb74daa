from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.orm import Session
from typing import Iterator, Optional
import logging
from .. import schemas
from ..errors import Unauthorized
from ..service import AuthService, build_auth_service

logger = logging.getLogger(__name__)

router = APIRouter()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    state = request.app.state
    return build_auth_service(db, state.settings, state.tokens, state.hasher, state.mailer)


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extract the token from a ``Bearer`` Authorization header"""
    if not authorization:
        raise Unauthorized("No token provided")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthorized()

    return parts[1]


def get_current_user(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service),
):
    return service.authorize(token)


@router.post("/auth/signup", response_model=schemas.MessageResponse, status_code=status.HTTP_201_CREATED)
def signup(data: schemas.SignupRequest, service: AuthService = Depends(get_auth_service)):
    """Create a new user account (requires email verification)"""
    service.signup(data.username, data.email, data.password)
    return {"message": "User signed up successfully. Please check your email for the verification code."}


@router.post("/auth/login", response_model=schemas.LoginResponse)
def login(data: schemas.LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Login with email and password"""
    result = service.login(data.email, data.password)
    user = schemas.UserResponse.model_validate(result.user)
    return {
        "message": "User logged in successfully",
        "data": {
            **user.model_dump(),
            "access_token": result.access_token,
            "refresh_token": result.refresh_token,
        },
    }


@router.post("/auth/logout", response_model=schemas.MessageResponse)
def logout(
    data: schemas.RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
    current_user=Depends(get_current_user),
):
    """Revoke a refresh token"""
    service.logout(data.refresh_token)
    logger.info(f"User {current_user.id} logged out")
    return {"message": "Logged out successfully"}


@router.post("/auth/refresh-token", response_model=schemas.RefreshResponse)
def refresh_token(data: schemas.RefreshTokenRequest, service: AuthService = Depends(get_auth_service)):
    """Mint a new access token from a refresh token"""
    access_token = service.refresh_access_token(data.refresh_token)
    return {
        "message": "Access token refreshed successfully",
        "data": {"access_token": access_token},
    }


@router.post("/auth/reset-password", response_model=schemas.MessageResponse)
def reset_password(
    request: Request,
    data: schemas.ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Email a password recovery link"""
    base_url = request.headers.get("referer") or request.app.state.settings.client_base_url
    service.reset_password(data.email, base_url)
    return {"message": "Reset token sent successfully"}


@router.post("/auth/reset-password-confirm", response_model=schemas.MessageResponse)
def reset_password_confirm(
    data: schemas.ResetPasswordConfirmRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Set a new password using a recovery token"""
    service.reset_password_confirm(data.user_id, data.token, data.new_password)
    return {"message": "Password reset successfully"}


@router.post("/auth/verify-otp", response_model=schemas.MessageResponse)
def verify_otp(data: schemas.VerifyOtpRequest, service: AuthService = Depends(get_auth_service)):
    """Verify email with 6-digit code"""
    service.verify_otp(int(data.code))
    return {"message": "User verified successfully"}


@router.post("/auth/resend-otp", response_model=schemas.MessageResponse)
def resend_otp(data: schemas.ResendOtpRequest, service: AuthService = Depends(get_auth_service)):
    """Resend verification code to email"""
    service.request_new_otp(data.email)
    return {"message": "OTP sent successfully"}


@router.get("/auth/me", response_model=schemas.UserEnvelope)
def get_me(current_user=Depends(get_current_user)):
    """Get current user based on the bearer access token"""
    return {"message": "Current user", "data": schemas.UserResponse.model_validate(current_user)}
