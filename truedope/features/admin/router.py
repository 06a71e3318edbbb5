"""Admin router (user management and audit log endpoints)."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from truedope.database.dependencies import get_db_session
from truedope.features.auth.dependencies import Identity, get_refresh_ledger, require_admin
from truedope.features.auth.refresh_tokens import RefreshTokenLedger
from truedope.shared.audit.audit import AdminAction, AuditService
from truedope.shared.middlewares.request_context import client_ip
from truedope.shared.pagination.pagination import PaginatedResponse, PaginationParams, pagination_params
from truedope.shared.schemas import ApiResponse, MessageResponse, ok, ok_message

from .schemas import (
    AdminUserUpdateRequest,
    AuditLogEntry,
    RevokedSessionsResponse,
    TemporaryPasswordResponse,
    UserDetail,
    UserListItem,
)
from .service import AdminService, RequestMeta

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def request_meta(request: Request, admin: Identity = Depends(require_admin)) -> RequestMeta:
    return RequestMeta(
        admin_user_id=admin.user_id,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.get("/users", response_model=ApiResponse[PaginatedResponse[UserListItem]])
async def list_users(
    pagination: PaginationParams = Depends(pagination_params),
    search: str | None = Query(None, max_length=255),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_desc: bool = Query(True, alias="sortDesc"),
    session: AsyncSession = Depends(get_db_session),
):
    """List all users (admin only).

    - `page`: Page number (1-indexed, default: 1)
    - `pageSize`: Items per page (default: 20, max: 100)
    - `search`: Matches email, first name or last name
    - `sortBy`: createdAt, email, lastLoginAt, firstName, lastName
    """
    users, total = await AdminService.list_users(session, pagination, search, sort_by, sort_desc)
    items = [UserListItem.model_validate(u) for u in users]
    return ok(PaginatedResponse[UserListItem].build(items, total, pagination))


@router.get("/users/{user_id}", response_model=ApiResponse[UserDetail])
async def get_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get user by ID (admin only)."""
    user = await AdminService.get_user(session, user_id)
    return ok(UserDetail.from_user(user))


@router.put("/users/{user_id}", response_model=ApiResponse[UserDetail])
async def update_user(
    user_id: int,
    data: AdminUserUpdateRequest,
    meta: RequestMeta = Depends(request_meta),
    session: AsyncSession = Depends(get_db_session),
):
    """Update user names or admin flag (admin only). Administrators cannot demote themselves."""
    user = await AdminService.update_user(session, meta, user_id, data)
    logger.info(f"User {user_id} updated by admin {meta.admin_user_id}")
    return ok(UserDetail.from_user(user), "User updated successfully")


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def disable_user(
    user_id: int,
    meta: RequestMeta = Depends(request_meta),
    session: AsyncSession = Depends(get_db_session),
    refresh_ledger: RefreshTokenLedger = Depends(get_refresh_ledger),
):
    """Disable user (admin only). Accounts are never hard-deleted."""
    await AdminService.disable_user(session, meta, user_id, refresh_ledger)
    logger.info(f"User {user_id} disabled by admin {meta.admin_user_id}")
    return ok_message("User account disabled")


@router.post("/users/{user_id}/enable", response_model=MessageResponse)
async def enable_user(
    user_id: int,
    meta: RequestMeta = Depends(request_meta),
    session: AsyncSession = Depends(get_db_session),
):
    """Re-enable a disabled user and clear lockout state (admin only)."""
    await AdminService.enable_user(session, meta, user_id)
    logger.info(f"User {user_id} enabled by admin {meta.admin_user_id}")
    return ok_message("User account enabled")


@router.post("/users/{user_id}/reset-password", response_model=ApiResponse[TemporaryPasswordResponse])
async def reset_user_password(
    user_id: int,
    meta: RequestMeta = Depends(request_meta),
    session: AsyncSession = Depends(get_db_session),
    refresh_ledger: RefreshTokenLedger = Depends(get_refresh_ledger),
):
    """Force a password reset (admin only). Returns a temporary password once."""
    temporary_password = await AdminService.reset_password(session, meta, user_id, refresh_ledger)
    logger.info(f"Password of user {user_id} reset by admin {meta.admin_user_id}")
    return ok(
        TemporaryPasswordResponse(temporary_password=temporary_password),
        "Password reset. All sessions have been signed out.",
    )


@router.post("/users/{user_id}/revoke-sessions", response_model=ApiResponse[RevokedSessionsResponse])
async def revoke_user_sessions(
    user_id: int,
    meta: RequestMeta = Depends(request_meta),
    session: AsyncSession = Depends(get_db_session),
    refresh_ledger: RefreshTokenLedger = Depends(get_refresh_ledger),
):
    """Sign a user out of every device (admin only)."""
    revoked = await AdminService.revoke_sessions(session, meta, user_id, refresh_ledger)
    logger.info(f"{revoked} session(s) of user {user_id} revoked by admin {meta.admin_user_id}")
    return ok(RevokedSessionsResponse(revoked_sessions=revoked))


@router.get("/audit-logs", response_model=ApiResponse[PaginatedResponse[AuditLogEntry]])
async def list_audit_logs(
    pagination: PaginationParams = Depends(pagination_params),
    admin_user_id: int | None = Query(None, alias="adminUserId"),
    target_user_id: int | None = Query(None, alias="targetUserId"),
    action_type: AdminAction | None = Query(None, alias="actionType"),
    from_date: datetime | None = Query(None, alias="fromDate"),
    to_date: datetime | None = Query(None, alias="toDate"),
    session: AsyncSession = Depends(get_db_session),
):
    """List admin audit log entries, newest first (admin only)."""
    entries, total = await AuditService.get_logs(
        session,
        pagination,
        admin_user_id=admin_user_id,
        target_user_id=target_user_id,
        action=action_type,
        from_date=from_date,
        to_date=to_date,
    )
    items = [AuditLogEntry.model_validate(e) for e in entries]
    return ok(PaginatedResponse[AuditLogEntry].build(items, total, pagination))
