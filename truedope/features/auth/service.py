"""Authentication service layer."""

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from truedope.config.logging_config import redact_email
from truedope.config.settings import Settings
from truedope.database.base import utcnow
from truedope.features.user.exceptions import EmailAlreadyExists
from truedope.features.user.models import DUMMY_PASSWORD_HASH, User, UserRole, pwd_hasher
from truedope.features.user.schemas import UserProfile
from truedope.shared.errors.exceptions import ValidationException
from truedope.shared.validators.email import normalize_email
from truedope.shared.validators.password import password_policy_violations

from .exceptions import (
    AccountDisabledException,
    AccountLockedException,
    InvalidCredentialsException,
    InvalidRefreshTokenException,
    InvalidResetTokenException,
)
from .jwt_utils import TokenSigner
from .notifications import Notifier
from .password_reset import PasswordResetLedger
from .refresh_tokens import RefreshTokenLedger
from .schemas import LoginResponse, TokenResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login, token refresh and password reset.

    Every method that changes the database commits its own work before
    returning or raising, so lockout counters survive failed logins.
    """

    def __init__(
        self,
        config: Settings,
        signer: TokenSigner,
        refresh_ledger: RefreshTokenLedger,
        reset_ledger: PasswordResetLedger,
        notifier: Notifier,
    ):
        self.config = config
        self.signer = signer
        self.refresh_ledger = refresh_ledger
        self.reset_ledger = reset_ledger
        self.notifier = notifier

    def check_password_policy(self, password: str, field: str = "password") -> None:
        violations = password_policy_violations(password, self.config.password_policy)
        if violations:
            raise ValidationException(field, violations, detail="Password does not meet requirements")

    async def get_user_by_email(self, session: AsyncSession, email: str, for_update: bool = False) -> User | None:
        stmt = select(User).where(User.email == normalize_email(email))
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def register(
        self,
        session: AsyncSession,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        """Create a regular user account. No tokens are issued.

        Raises:
            EmailAlreadyExists: If the email is taken (case-insensitive)
            ValidationException: If the password breaks the policy

        """
        self.check_password_policy(password)

        if await self.get_user_by_email(session, email) is not None:
            raise EmailAlreadyExists()

        user = User(
            email=normalize_email(email),
            hashed_password=User.hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.USER,
            disabled=False,
            failed_login_attempts=0,
        )
        session.add(user)
        try:
            await session.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email.
            await session.rollback()
            raise EmailAlreadyExists() from e
        await session.refresh(user)

        logger.info(f"New user registered: {user.id} ({redact_email(user.email)})")
        return user

    async def issue_tokens(self, user: User) -> TokenResponse:
        access_token = self.signer.issue(user.id, user.role.value, user.email)
        refresh = await self.refresh_ledger.create(user.id)
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh.token,
            expires_in=self.signer.expires_in_seconds,
        )

    async def login(self, session: AsyncSession, email: str, password: str) -> LoginResponse:
        """Verify credentials and issue an access/refresh token pair.

        Raises:
            InvalidCredentialsException: Unknown email or wrong password
            AccountLockedException: Lockout window active, or this failure reached the limit
            AccountDisabledException: Correct password on a disabled account

        """
        user = await self.get_user_by_email(session, email, for_update=True)
        if user is None:
            pwd_hasher.verify(password, DUMMY_PASSWORD_HASH)
            logger.warning(f"Login attempt for unknown email: {redact_email(email)}")
            raise InvalidCredentialsException()

        now = utcnow()
        if user.is_locked(now):
            logger.warning(f"Login attempt for locked account: {user.id}")
            raise AccountLockedException()

        if not user.verify_password(password):
            await self._record_failed_login(session, user)

        if user.disabled:
            logger.warning(f"Login attempt for disabled account: {user.id}")
            raise AccountDisabledException()

        user.clear_lockout()
        user.last_login_at = now
        await session.commit()

        tokens = await self.issue_tokens(user)
        logger.info(f"User logged in: {user.id}")
        return LoginResponse(**tokens.model_dump(), user=UserProfile.model_validate(user))

    async def _record_failed_login(self, session: AsyncSession, user: User) -> None:
        policy = self.config.lockout_policy
        user.failed_login_attempts += 1

        if user.failed_login_attempts >= policy.max_failed_attempts:
            user.locked_until = utcnow() + timedelta(minutes=policy.lockout_minutes)
            user.failed_login_attempts = 0
            await session.commit()
            logger.warning(f"Account locked due to failed attempts: {user.id}")
            raise AccountLockedException()

        await session.commit()
        raise InvalidCredentialsException()

    async def refresh(self, session: AsyncSession, refresh_token: str) -> TokenResponse:
        """Rotate a refresh token and issue a new access token."""
        rotated = await self.refresh_ledger.validate_and_rotate(refresh_token)
        if rotated is None:
            raise InvalidRefreshTokenException()

        issued, user_id = rotated
        user = await session.get(User, user_id)
        if user is None or user.disabled:
            await self.refresh_ledger.revoke(issued.token)
            logger.warning(f"Refresh rejected for missing or disabled user: {user_id}")
            raise InvalidRefreshTokenException()

        return TokenResponse(
            access_token=self.signer.issue(user.id, user.role.value, user.email),
            refresh_token=issued.token,
            expires_in=self.signer.expires_in_seconds,
        )

    async def logout(self, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown or already-revoked tokens are ignored."""
        if await self.refresh_ledger.revoke(refresh_token):
            logger.info("Refresh token revoked on logout")

    async def forgot_password(self, session: AsyncSession, email: str) -> None:
        """Send a reset link when the account exists. Callers always report success."""
        user = await self.get_user_by_email(session, email)
        if user is None or user.disabled:
            logger.info(f"Password reset requested for unknown or disabled account: {redact_email(email)}")
            return

        issued = await self.reset_ledger.create(user.id)
        reset_url = f"{self.config.frontend_url.rstrip('/')}/reset-password?token={issued.token}"
        try:
            await self.notifier.send_password_reset(user.email, reset_url, issued.expires_at)
        except Exception as e:
            logger.error(f"Failed to deliver password reset email for user {user.id}: {e!r}")

    async def reset_password(self, session: AsyncSession, token: str, new_password: str) -> None:
        """Set a new password with a single-use reset token and sign out everywhere."""
        self.check_password_policy(new_password, field="newPassword")

        user_id = await self.reset_ledger.consume(token)
        if user_id is None:
            raise InvalidResetTokenException()

        user = await session.get(User, user_id, with_for_update=True)
        if user is None:
            raise InvalidResetTokenException()

        user.hashed_password = User.hash_password(new_password)
        user.clear_lockout()
        await session.commit()

        revoked = await self.refresh_ledger.revoke_all(user.id)
        logger.info(f"Password reset completed for user {user.id}, {revoked} session(s) revoked")
