"""User schemas (DTOs)."""

from datetime import datetime

from pydantic import ConfigDict, Field, ValidationInfo, field_validator

from truedope.config.settings import settings
from truedope.shared.schemas import CamelModel
from truedope.shared.validators.password import validate_password_strength

from .models import UserRole


# Request schemas
class ProfileUpdateRequest(CamelModel):
    """Profile update request. Omitted fields are left unchanged."""

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)


class PasswordChangeRequest(CamelModel):
    """Password change request."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value, settings.password_policy)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        """Validate that new_password and confirm_password match."""
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("New passwords do not match")
        return value


# Response schemas
class UserProfile(CamelModel):
    """User profile as returned to the account owner."""

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole
    is_admin: bool
    created_at: datetime | None = None
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
