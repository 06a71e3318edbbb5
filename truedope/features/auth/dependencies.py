"""Authentication dependencies for FastAPI."""

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from truedope.cache.client import get_token_store
from truedope.cache.store import TokenStore
from truedope.config.settings import settings
from truedope.database.dependencies import get_db_session
from truedope.features.user.models import User, UserRole
from truedope.shared.middlewares.request_context import set_context_user

from .exceptions import InsufficientRoleException, UnauthenticatedException
from .jwt_utils import TokenSigner, get_token_signer
from .notifications import Notifier, get_notifier
from .password_reset import PasswordResetLedger
from .refresh_tokens import RefreshTokenLedger
from .service import AuthService

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Caller identity resolved from a verified access token."""

    user_id: int
    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def get_refresh_ledger(store: TokenStore = Depends(get_token_store)) -> RefreshTokenLedger:
    return RefreshTokenLedger(
        store,
        lifetime=timedelta(days=settings.refresh_token_expire_days),
        reuse_policy=settings.refresh_token_reuse_policy,
    )


def get_reset_ledger(store: TokenStore = Depends(get_token_store)) -> PasswordResetLedger:
    return PasswordResetLedger(store, lifetime=timedelta(minutes=settings.password_reset_token_expire_minutes))


def get_auth_service(
    signer: TokenSigner = Depends(get_token_signer),
    refresh_ledger: RefreshTokenLedger = Depends(get_refresh_ledger),
    reset_ledger: PasswordResetLedger = Depends(get_reset_ledger),
    notifier: Notifier = Depends(get_notifier),
) -> AuthService:
    return AuthService(settings, signer, refresh_ledger, reset_ledger, notifier)


async def get_optional_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    signer: TokenSigner = Depends(get_token_signer),
) -> Identity | None:
    """Resolve the caller if a valid bearer token is present, otherwise None.

    Useful for endpoints that work with or without authentication.
    """
    if credentials is None:
        return None

    claims = signer.verify(credentials.credentials)
    if claims is None:
        return None

    identity = Identity(user_id=claims.user_id, role=claims.role, email=claims.email)
    request.state.identity = identity
    set_context_user(identity.user_id)
    return identity


async def get_current_identity(identity: Identity | None = Depends(get_optional_identity)) -> Identity:
    """Require a valid access token.

    Raises:
        UnauthenticatedException: Missing, malformed, expired or forged token

    """
    if identity is None:
        raise UnauthenticatedException()
    return identity


def require_role(*required_roles: UserRole):
    """Dependency factory to require specific roles.

    Usage:
        Depends(require_role(UserRole.ADMIN))

        # Multiple roles (OR logic - caller needs ANY of these)
        Depends(require_role(UserRole.ADMIN, UserRole.USER))
    """
    allowed = {role.value for role in required_roles}

    async def role_checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise InsufficientRoleException([r.value for r in required_roles])
        return identity

    return role_checker


require_admin = require_role(UserRole.ADMIN)


async def get_current_user(
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
) -> User:
    """Load the authenticated user's row.

    Raises:
        UnauthenticatedException: If the user no longer exists or is disabled

    """
    user = await session.get(User, identity.user_id)
    if user is None or user.disabled:
        raise UnauthenticatedException()
    return user
