"""Admin service layer: account management on behalf of administrators."""

import logging
import secrets
import string
from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from truedope.features.auth.refresh_tokens import RefreshTokenLedger
from truedope.features.user.exceptions import CannotDemoteSelf, CannotDisableSelf, UserNotFound
from truedope.features.user.models import User, UserRole
from truedope.shared.audit.audit import AdminAction, AuditService, compute_diff
from truedope.shared.pagination.pagination import PaginationParams

from .schemas import AdminUserUpdateRequest

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdat": User.created_at,
    "email": User.email,
    "lastloginat": User.last_login_at,
    "firstname": User.first_name,
    "lastname": User.last_name,
}

TEMPORARY_PASSWORD_LENGTH = 16


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """Random password with at least one uppercase letter, lowercase letter and digit."""
    alphabet = string.ascii_letters + string.digits
    while True:
        password = "".join(secrets.choice(alphabet) for _ in range(length))
        if (
            any(c.isupper() for c in password)
            and any(c.islower() for c in password)
            and any(c.isdigit() for c in password)
        ):
            return password


@dataclass(frozen=True)
class RequestMeta:
    """Acting administrator and client metadata recorded with every audit entry."""

    admin_user_id: int
    ip_address: str | None = None
    user_agent: str | None = None


class AdminService:
    """Service for admin-only user operations."""

    @staticmethod
    async def _get_user(session: AsyncSession, user_id: int) -> User:
        user = await session.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    @staticmethod
    async def _audit(
        session: AsyncSession,
        meta: RequestMeta,
        action: AdminAction,
        target_user_id: int,
        details: dict | None = None,
    ) -> None:
        await AuditService.log_action(
            session,
            admin_user_id=meta.admin_user_id,
            action=action,
            target_user_id=target_user_id,
            details=details,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )

    @staticmethod
    async def list_users(
        session: AsyncSession,
        pagination: PaginationParams,
        search: str | None = None,
        sort_by: str = "createdAt",
        sort_desc: bool = True,
    ) -> tuple[list[User], int]:
        """Get paginated users list.

        Args:
            session: Database session
            pagination: Page window
            search: Case-insensitive substring matched against email, first and last name
            sort_by: createdAt, email, lastLoginAt, firstName or lastName (unknown values sort by createdAt)
            sort_desc: Sort direction

        Returns:
            Tuple of (users, total_count)

        """
        conditions = []
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            conditions.append(
                or_(User.email.ilike(pattern), User.first_name.ilike(pattern), User.last_name.ilike(pattern))
            )

        count_stmt = select(func.count()).select_from(User).where(*conditions)
        total = (await session.execute(count_stmt)).scalar_one()

        column = SORT_COLUMNS.get(sort_by.lower(), User.created_at)
        order = column.desc() if sort_desc else column.asc()
        stmt = (
            select(User)
            .where(*conditions)
            .order_by(order, User.id.desc() if sort_desc else User.id.asc())
            .offset(pagination.skip)
            .limit(pagination.limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def get_user(session: AsyncSession, user_id: int) -> User:
        return await AdminService._get_user(session, user_id)

    @staticmethod
    async def update_user(
        session: AsyncSession, meta: RequestMeta, user_id: int, data: AdminUserUpdateRequest
    ) -> User:
        """Update names and admin flag of a user.

        Raises:
            UserNotFound: Unknown user
            CannotDemoteSelf: An administrator removing their own admin role

        """
        user = await AdminService._get_user(session, user_id)
        if user_id == meta.admin_user_id and data.is_admin is False:
            raise CannotDemoteSelf()

        before = {"first_name": user.first_name, "last_name": user.last_name, "is_admin": user.is_admin}

        if data.first_name is not None:
            user.first_name = data.first_name
        if data.last_name is not None:
            user.last_name = data.last_name
        if data.is_admin is not None:
            user.role = UserRole.ADMIN if data.is_admin else UserRole.USER

        after = {"first_name": user.first_name, "last_name": user.last_name, "is_admin": user.is_admin}
        await AdminService._audit(session, meta, AdminAction.USER_UPDATED, user.id, compute_diff(before, after))
        await session.commit()
        await session.refresh(user)
        return user

    @staticmethod
    async def reset_password(
        session: AsyncSession, meta: RequestMeta, user_id: int, refresh_ledger: RefreshTokenLedger
    ) -> str:
        """Replace the user's password with a random one and sign them out everywhere.

        Returns:
            The temporary password, to be shown to the administrator once

        """
        user = await AdminService._get_user(session, user_id)
        temporary_password = generate_temporary_password()
        user.hashed_password = User.hash_password(temporary_password)

        await AdminService._audit(session, meta, AdminAction.PASSWORD_RESET, user.id)
        await session.commit()
        await refresh_ledger.revoke_all(user.id)
        return temporary_password

    @staticmethod
    async def disable_user(
        session: AsyncSession, meta: RequestMeta, user_id: int, refresh_ledger: RefreshTokenLedger
    ) -> User:
        """Soft-delete: disable the account and revoke all its sessions.

        Raises:
            CannotDisableSelf: An administrator disabling their own account
            UserNotFound: Unknown user

        """
        if user_id == meta.admin_user_id:
            raise CannotDisableSelf()

        user = await AdminService._get_user(session, user_id)
        user.disabled = True

        await AdminService._audit(session, meta, AdminAction.USER_DISABLED, user.id)
        await session.commit()
        await refresh_ledger.revoke_all(user.id)
        return user

    @staticmethod
    async def enable_user(session: AsyncSession, meta: RequestMeta, user_id: int) -> User:
        """Re-enable an account and clear its lockout state."""
        user = await AdminService._get_user(session, user_id)
        user.disabled = False
        user.clear_lockout()

        await AdminService._audit(session, meta, AdminAction.USER_ENABLED, user.id)
        await session.commit()
        return user

    @staticmethod
    async def revoke_sessions(
        session: AsyncSession, meta: RequestMeta, user_id: int, refresh_ledger: RefreshTokenLedger
    ) -> int:
        """Revoke every refresh token of a user. Returns how many were live."""
        user = await AdminService._get_user(session, user_id)
        revoked = await refresh_ledger.revoke_all(user.id)

        await AdminService._audit(
            session, meta, AdminAction.SESSIONS_REVOKED, user.id, {"revoked_sessions": revoked}
        )
        await session.commit()
        return revoked
