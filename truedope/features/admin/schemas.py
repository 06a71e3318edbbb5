"""Admin schemas (DTOs)."""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from truedope.features.user.models import User, UserRole
from truedope.shared.audit.audit import AdminAction
from truedope.shared.schemas import CamelModel


# Request schemas
class AdminUserUpdateRequest(CamelModel):
    """Admin update of another account. Omitted fields are left unchanged."""

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    is_admin: bool | None = None


# Response schemas
class UserListItem(CamelModel):
    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole
    is_admin: bool
    disabled: bool
    created_at: datetime | None = None
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserDetail(UserListItem):
    """User detail including lockout state."""

    failed_login_attempts: int
    locked_until: datetime | None = None
    is_locked: bool = False

    @classmethod
    def from_user(cls, user: User) -> "UserDetail":
        return cls(
            **UserListItem.model_validate(user).model_dump(),
            failed_login_attempts=user.failed_login_attempts,
            locked_until=user.locked_until,
            is_locked=user.is_locked(),
        )


class TemporaryPasswordResponse(CamelModel):
    """Shown to the administrator once; never stored in clear."""

    temporary_password: str


class RevokedSessionsResponse(CamelModel):
    revoked_sessions: int


class AuditLogEntry(CamelModel):
    id: int
    admin_user_id: int
    target_user_id: int | None = None
    action_type: AdminAction
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)
