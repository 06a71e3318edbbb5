"""User profile router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from truedope.config.settings import settings
from truedope.database.dependencies import get_db_session
from truedope.features.auth.dependencies import get_current_user
from truedope.shared.schemas import ApiResponse, MessageResponse, ok, ok_message

from .models import User
from .schemas import PasswordChangeRequest, ProfileUpdateRequest, UserProfile
from .service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=ApiResponse[UserProfile])
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return ok(UserProfile.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[UserProfile])
async def update_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Update current user's own profile (firstName, lastName only)."""
    user = await UserService.update_profile(current_user, first_name=data.first_name, last_name=data.last_name)
    await session.commit()
    await session.refresh(user)
    return ok(UserProfile.model_validate(user), "Profile updated successfully")


@router.put("/password", response_model=MessageResponse)
async def change_password(
    data: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Change current user's password."""
    await UserService.change_password(
        current_user, data.current_password, data.new_password, settings.password_policy
    )
    await session.commit()
    return ok_message("Password changed successfully")
