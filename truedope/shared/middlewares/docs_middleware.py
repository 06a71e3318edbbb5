"""Middleware for protecting API documentation routes to admin users only."""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer

from truedope.features.auth.jwt_utils import get_token_signer
from truedope.shared.errors.handlers import error_body

PROTECTED_PATHS = {"/docs", "/redoc", "/openapi.json"}

security = HTTPBearer(auto_error=False)


async def admin_docs_middleware(request: Request, call_next):
    """Middleware to protect API documentation routes to admin users only.

    Protects:
    - /docs (Swagger UI)
    - /redoc (ReDoc)
    - /openapi.json (OpenAPI schema)

    Missing or invalid tokens receive 401; valid non-admin tokens receive 403.
    """
    if request.url.path in PROTECTED_PATHS:
        credentials = await security(request)
        claims = get_token_signer().verify(credentials.credentials) if credentials else None

        if claims is None:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content=error_body("Authentication required", "UNAUTHENTICATED"),
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not claims.is_admin:
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content=error_body("Insufficient permissions", "FORBIDDEN"),
            )

    return await call_next(request)
