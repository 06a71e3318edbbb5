"""Middleware adding standard security headers to every response."""

from fastapi import Request

from truedope.config.settings import settings

DEFAULT_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

API_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


async def security_headers_middleware(request: Request, call_next):
    """Add security headers without overriding ones a handler already set.

    API responses additionally get no-store caching and a locked-down CSP; the
    docs pages are left alone so Swagger UI can load its assets.
    """
    response = await call_next(request)

    headers = dict(DEFAULT_HEADERS)
    if request.url.path.startswith(settings.api_prefix):
        headers.update(API_HEADERS)

    for name, value in headers.items():
        if name not in response.headers:
            response.headers[name] = value

    return response
