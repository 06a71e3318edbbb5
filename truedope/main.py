import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from truedope.cache.client import close_token_store, init_token_store
from truedope.config.logging_config import configure_logging
from truedope.config.settings import settings
from truedope.database.client import close_db, create_schema, get_session, init_db
from truedope.database.seed import seed_admin_user
from truedope.features.admin.router import router as admin_router
from truedope.features.auth.router import router as auth_router
from truedope.features.user.router import router as user_router
from truedope.shared.errors.handlers import register_exception_handlers
from truedope.shared.middlewares.docs_middleware import admin_docs_middleware
from truedope.shared.middlewares.request_context import RequestContextMiddleware
from truedope.shared.middlewares.security_headers import security_headers_middleware
from truedope.shared.rate_limit import limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    configure_logging(settings.log_level, settings.log_format)
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    await init_db(settings)
    await create_schema()
    await init_token_store(settings)
    async with get_session() as session:
        await seed_admin_user(session, settings)

    yield

    # Shutdown
    await close_token_store()
    await close_db()


# Admin-only API documentation
# Routes are protected by admin_docs_middleware
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

register_exception_handlers(app)

# Add rate limiting middleware
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Add admin-only documentation middleware
app.middleware("http")(admin_docs_middleware)
app.middleware("http")(security_headers_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# Outermost, so every log line of the request carries its context
app.add_middleware(RequestContextMiddleware)

# Router Registration
routers: list[APIRouter] = [
    auth_router,
    user_router,
    admin_router,
]

for router in routers:
    app.include_router(router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": settings.app_name, "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
