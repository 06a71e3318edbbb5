"""Authentication schemas (DTOs)."""

from pydantic import EmailStr, Field, ValidationInfo, field_validator

from truedope.config.settings import settings
from truedope.features.user.schemas import UserProfile
from truedope.shared.schemas import CamelModel
from truedope.shared.validators.password import validate_password_strength


# Request schemas
class RegisterRequest(CamelModel):
    """User registration request.

    Note: Uses email-validator library via Pydantic's EmailStr for RFC 5322 compliant email validation.
    """

    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value, settings.password_policy)


class LoginRequest(CamelModel):
    """Login request. The password is not policy-checked so old passwords keep working."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(CamelModel):
    """Refresh token request."""

    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """Password reset with a token received by email."""

    token: str = Field(..., min_length=1)
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
            raise ValueError("Passwords do not match")
        return value


# Response schemas
class TokenResponse(CamelModel):
    """JWT token response."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds


class LoginResponse(TokenResponse):
    """Token pair plus the profile of the signed-in user."""

    user: UserProfile
