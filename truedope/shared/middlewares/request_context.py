"""Middleware that records per-request context for logging."""

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from truedope.config.settings import settings

logger = logging.getLogger(__name__)

_EMPTY_CONTEXT: dict[str, str | None] = {
    "request_id": "-",
    "client_ip": None,
    "method": None,
    "path": None,
    "user_id": None,
}

request_context_ctx: ContextVar[dict[str, str | None]] = ContextVar("request_context", default=_EMPTY_CONTEXT)


def get_request_context() -> dict[str, str | None]:
    """Get the context of the request being served (defaults outside a request)."""
    return request_context_ctx.get()


def set_context_user(user_id: int | str) -> None:
    """Record the authenticated user id for the remainder of the request."""
    context = dict(request_context_ctx.get())
    context["user_id"] = str(user_id)
    request_context_ctx.set(context)


def client_ip(request: Request) -> str | None:
    """Client address.

    The first X-Forwarded-For hop is used only when ``trust_proxy_headers`` is
    set; otherwise the header is client-controlled and ignored.
    """
    forwarded = request.headers.get("x-forwarded-for") if settings.trust_proxy_headers else None
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Stores request id, client address, method and path in a ContextVar.

    The logging filter reads this context so every log line emitted while the
    request is served carries it. The request id is echoed in X-Request-ID.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid4().hex
        token = request_context_ctx.set(
            {
                "request_id": request_id,
                "client_ip": client_ip(request),
                "method": request.method,
                "path": request.url.path,
                "user_id": None,
            }
        )
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_context_ctx.reset(token)
