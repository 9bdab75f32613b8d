"""Shared fixtures.

Database-backed tests run against in-memory SQLite (aiosqlite) with the
schema created from the ORM metadata. Email delivery is replaced by a
RecordingNotifier that keeps every link it was asked to send.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.auth import SessionIssuer
from app.core.config import settings
from app.core.database import build_engine, build_session_factory
from app.models.base import Base
from app.repositories.in_memory_user_repository import InMemoryUserRepository
from app.services.magic_link_service import MagicLinkService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

TEST_LINK_BASE_URL = "http://test/api/v1/auth"


class RecordingNotifier:
    """Notifier fake that records links instead of emailing them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str | None, str]] = []

    async def send_login_link(self, email: str, name: str | None, url: str) -> None:
        self.sent.append((email, name, url))

    @property
    def last_url(self) -> str:
        return self.sent[-1][2]

    @property
    def last_token(self) -> str:
        """Plain token from the most recently sent link."""
        return parse_qs(urlparse(self.last_url).query)["token"][0]


class ManualClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        # Starts at real time: minted credentials are checked against the wall clock
        self.now = start or datetime.now(UTC).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database with all tables created."""
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Test database session."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Service collaborators
# =============================================================================


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def session_issuer(clock: ManualClock) -> SessionIssuer:
    return SessionIssuer(
        secret=TEST_AUTH_SECRET,
        issuer=settings.auth_issuer,
        audience=settings.auth_audience,
        clock=clock,
    )


@pytest.fixture
def memory_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def service(
    memory_repository: InMemoryUserRepository,
    notifier: RecordingNotifier,
    session_issuer: SessionIssuer,
    clock: ManualClock,
) -> MagicLinkService:
    """MagicLinkService over the in-memory repository and a manual clock."""
    return MagicLinkService(
        memory_repository,
        notifier,
        session_issuer,
        link_base_url=TEST_LINK_BASE_URL,
        clock=clock,
    )


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    notifier: RecordingNotifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the SQLite database and RecordingNotifier.

    Sets up:
    - get_db override bound to the test database
    - get_notifier override returning the shared RecordingNotifier
    - test auth secret and link base URL in settings
    """
    from app.core.database import get_db
    from app.core.email import get_notifier
    from app.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    original_auth_secret = settings.auth_secret
    original_link_base_url = settings.magic_link_base_url
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.magic_link_base_url = TEST_LINK_BASE_URL

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.auth_secret = original_auth_secret
    settings.magic_link_base_url = original_link_base_url
    app.dependency_overrides.clear()
