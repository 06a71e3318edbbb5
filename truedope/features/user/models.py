"""User domain models."""

from datetime import datetime
from enum import StrEnum

from pwdlib import PasswordHash
from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from truedope.database.base import Base, TimestampMixin, UTCDateTime, utcnow


class UserRole(StrEnum):
    """User roles for RBAC.

    USER: Regular shooter logging their own rifles, ammo and range sessions.
    ADMIN: Platform administrator. Can manage accounts and read the admin audit log.
    """

    USER = "user"
    ADMIN = "admin"


pwd_hasher = PasswordHash.recommended()

# Verified against for unknown emails so a miss costs as much as a wrong password.
DUMMY_PASSWORD_HASH = pwd_hasher.hash("truedope-dummy-password")


class User(Base, TimestampMixin):
    """User model for authentication and authorization.

    Accounts are never hard-deleted; administrators disable them instead.
    """

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity (stored normalized: stripped and lower-cased)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Authentication
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authorization
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.USER,
        server_default=UserRole.USER.value,
    )

    # Status
    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    # Audit
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def verify_password(self, plain_password: str) -> bool:
        """Verify a password against the hash using Argon2.

        Salt is automatically extracted from the hash by pwdlib.
        """
        return pwd_hasher.verify(plain_password, self.hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using Argon2.

        Salt is automatically generated and embedded in the returned hash.
        """
        return pwd_hasher.hash(password)

    def is_locked(self, now: datetime | None = None) -> bool:
        """Check if account is locked."""
        return self.locked_until is not None and self.locked_until > (now or utcnow())

    def clear_lockout(self) -> None:
        self.failed_login_attempts = 0
        self.locked_until = None
