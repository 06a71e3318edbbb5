"""Admin audit trail: who changed which account, when and how."""

import logging
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Enum, Integer, String, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from truedope.database.base import Base, UTCDateTime, utcnow
from truedope.shared.pagination.pagination import PaginationParams

logger = logging.getLogger(__name__)


class AdminAction(StrEnum):
    """Audit action types."""

    USER_UPDATED = "user_updated"
    USER_DISABLED = "user_disabled"
    USER_ENABLED = "user_enabled"
    PASSWORD_RESET = "password_reset"
    SESSIONS_REVOKED = "sessions_revoked"


class AdminAuditLog(Base):
    """Audit log entry for an administrator action on a user account."""

    __tablename__ = "admin_audit_logs"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Actors
    admin_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    target_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Action details
    action_type: Mapped[AdminAction] = mapped_column(
        Enum(AdminAction, native_enum=False, length=50, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Request metadata
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length is 45
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False, index=True)


def compute_diff(before: dict[str, Any], after: dict[str, Any]) -> dict[str, dict[str, Any]] | None:
    """Compute field-level differences between two record states.

    Args:
        before: Previous state
        after: New state

    Returns:
        Dictionary of changed fields with 'from' and 'to' values, or None when nothing changed

    """
    diff = {}

    for key in sorted(set(before) | set(after)):
        before_value = before.get(key)
        after_value = after.get(key)

        if before_value != after_value:
            # Special handling for datetime
            if isinstance(before_value, datetime):
                before_value = before_value.isoformat()
            if isinstance(after_value, datetime):
                after_value = after_value.isoformat()

            diff[key] = {"from": before_value, "to": after_value}

    return diff if diff else None


class AuditService:
    """Write and query the admin audit log."""

    @staticmethod
    async def log_action(
        session: AsyncSession,
        admin_user_id: int,
        action: AdminAction,
        target_user_id: int | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AdminAuditLog:
        """Add an audit entry to the session. The caller commits."""
        entry = AdminAuditLog(
            admin_user_id=admin_user_id,
            action_type=action,
            target_user_id=target_user_id,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
            timestamp=utcnow(),
        )
        session.add(entry)
        logger.info(f"Admin {admin_user_id} performed {action.value} on user {target_user_id}")
        return entry

    @staticmethod
    async def get_logs(
        session: AsyncSession,
        pagination: PaginationParams,
        admin_user_id: int | None = None,
        target_user_id: int | None = None,
        action: AdminAction | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> tuple[list[AdminAuditLog], int]:
        """Get filtered audit entries, newest first.

        Returns:
            Tuple of (entries, total_count)

        """
        conditions = []
        if admin_user_id is not None:
            conditions.append(AdminAuditLog.admin_user_id == admin_user_id)
        if target_user_id is not None:
            conditions.append(AdminAuditLog.target_user_id == target_user_id)
        if action is not None:
            conditions.append(AdminAuditLog.action_type == action)
        if from_date is not None:
            conditions.append(AdminAuditLog.timestamp >= from_date)
        if to_date is not None:
            conditions.append(AdminAuditLog.timestamp <= to_date)

        count_stmt = select(func.count()).select_from(AdminAuditLog).where(*conditions)
        total = (await session.execute(count_stmt)).scalar_one()

        stmt = (
            select(AdminAuditLog)
            .where(*conditions)
            .order_by(AdminAuditLog.timestamp.desc(), AdminAuditLog.id.desc())
            .offset(pagination.skip)
            .limit(pagination.limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all()), total
