"""Authentication router (registration, login and token management endpoints)."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from truedope.config.settings import settings
from truedope.database.dependencies import get_db_session
from truedope.features.user.schemas import UserProfile
from truedope.shared.rate_limit import limiter
from truedope.shared.schemas import ApiResponse, MessageResponse, ok, ok_message

from .dependencies import get_auth_service
from .schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
)
from .service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a password reset link has been sent"


@router.post("/register", response_model=ApiResponse[UserProfile], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.register_rate_limit)
async def register(
    request: Request,
    data: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """Register a new account.

    - **email**: Email address (unique, case-insensitive)
    - **password**: At least 8 characters with uppercase, lowercase and digit
    - **firstName** / **lastName**: Optional
    """
    user = await service.register(session, data.email, data.password, data.first_name, data.last_name)
    return ok(UserProfile.model_validate(user), "Registration successful")


@router.post("/login", response_model=ApiResponse[LoginResponse])
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,
    data: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """Login and get JWT tokens.

    Returns accessToken, refreshToken, expiresIn, tokenType and the user profile.
    """
    return ok(await service.login(session, data.email, data.password), "Login successful")


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh_token(
    data: RefreshTokenRequest,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """Exchange a refresh token for a new token pair. The old refresh token stops working."""
    return ok(await service.refresh(session, data.refresh_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(data: RefreshTokenRequest, service: AuthService = Depends(get_auth_service)):
    """Logout and revoke refresh token. Succeeds even if the token is unknown."""
    await service.logout(data.refresh_token)
    return ok_message("Successfully logged out")


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.password_reset_rate_limit)
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """Request a password reset email. The response never reveals whether the account exists."""
    await service.forgot_password(session, data.email)
    return ok_message(FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(settings.password_reset_rate_limit)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """Set a new password using the token from the reset email. Signs out all sessions."""
    await service.reset_password(session, data.token, data.new_password)
    return ok_message("Password has been reset successfully")
