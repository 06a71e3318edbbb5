"""Test configuration and fixtures.

Each test gets its own in-memory SQLite database and in-memory token store:
1. The schema is created fresh per test on a StaticPool engine (one shared connection)
2. FastAPI dependencies for the database session, token store and notifier are overridden
3. Authenticated clients carry real access tokens issued by the application's signer
"""

from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

# Load test environment variables before the settings object is built
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from truedope.cache.client import get_token_store  # noqa: E402
from truedope.cache.store import MemoryTokenStore  # noqa: E402
from truedope.database.base import Base  # noqa: E402
from truedope.database.dependencies import get_db_session  # noqa: E402
from truedope.features.auth.jwt_utils import get_token_signer  # noqa: E402
from truedope.features.auth.notifications import get_notifier  # noqa: E402
from truedope.features.user.models import User, UserRole  # noqa: E402
from truedope.main import app  # noqa: E402

DEFAULT_PASSWORD = "TestPass123"


class RecordingNotifier:
    """Captures reset links instead of sending email."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send_password_reset(self, email: str, reset_url: str, expires_at: datetime) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append({"email": email, "reset_url": reset_url, "expires_at": expires_at})

    @property
    def last_token(self) -> str:
        return self.sent[-1]["reset_url"].split("token=", 1)[1]


# Database Setup - Function Scope (fresh in-memory database per test)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Database session shared by the test body and the application."""
    async with AsyncSession(db_engine, expire_on_commit=False) as async_session:
        yield async_session


@pytest_asyncio.fixture
async def token_store() -> AsyncGenerator[MemoryTokenStore]:
    store = MemoryTokenStore()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# FastAPI Client & Dependency Overrides


@pytest_asyncio.fixture(autouse=True)
async def override_dependencies(session: AsyncSession, token_store: MemoryTokenStore, notifier: RecordingNotifier):
    """Point the application at the per-test database, token store and notifier."""

    async def _get_test_session():
        yield session

    app.dependency_overrides[get_db_session] = _get_test_session
    app.dependency_overrides[get_token_store] = lambda: token_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP test client.

    This client is unauthenticated by default. Use auth_client or admin_client
    for authenticated requests.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Test User Factories


@pytest_asyncio.fixture
async def make_user(session: AsyncSession):
    """Factory fixture to create test users with custom fields.

    Usage:
        user = await make_user()                          # defaults
        admin = await make_user(role=UserRole.ADMIN)      # admin
        disabled = await make_user(disabled=True)         # disabled account
    """
    counter = 0  # Counter for unique email generation

    async def _factory(
        email=None,
        password=DEFAULT_PASSWORD,
        first_name="Test",
        last_name="User",
        role=UserRole.USER,
        **kwargs,
    ) -> User:
        nonlocal counter
        counter += 1

        if email is None:
            email = f"testuser{counter}@example.com"

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            hashed_password=User.hash_password(password),
            role=role,
            **kwargs,
        )

        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    yield _factory


def bearer(user: User) -> dict[str, str]:
    """Authorization header with a fresh access token for ``user``."""
    token = get_token_signer().issue(user.id, user.role.value, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Build Authorization headers for any user: ``client.get(url, headers=auth_headers(user))``."""
    return bearer


@pytest_asyncio.fixture
async def auth_client(client: AsyncClient, make_user):
    """Authenticated client with a regular user.

    Returns:
        tuple: (client, user) - both the HTTP client and the authenticated user

    """
    user = await make_user(email="alice@example.com", first_name="Alice")
    client.headers.update(bearer(user))
    yield client, user


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, make_user):
    """Authenticated client with an admin user.

    Same as auth_client but the user has ADMIN role.

    Returns:
        tuple: (client, user) - both the HTTP client and the admin user

    """
    user = await make_user(email="admin@example.com", first_name="Admin", role=UserRole.ADMIN)
    client.headers.update(bearer(user))
    yield client, user
