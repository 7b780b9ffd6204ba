"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
# Minimum bcrypt cost
os.environ["PASSWORD_HASH_ROUNDS"] = "4"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel, select

from studioauth.config import settings
from studioauth.database import get_session
from studioauth.main import app
from studioauth.models import User, VerificationToken
from studioauth.services.auth import create_token, hash_password
from studioauth.services.email import EmailBackend, EmailService
from studioauth.services.verification import (
    VerificationConfig,
    VerificationTokenManager,
    get_verification_manager,
)

TEST_PASSWORD = "correct-horse"
TEST_APP_URL = "http://test"


class FrozenClock:
    """Controllable clock for token expiry and cooldown tests.

    Usage:
        clock.advance(minutes=31)
    """

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
async def test_engine():
    """Create a fresh database with all tables for each test."""
    url = settings.database_url_test
    if url.startswith("sqlite"):
        # In-memory SQLite lives on one connection; share it across sessions
        engine = create_async_engine(url, poolclass=StaticPool)
    else:
        engine = create_async_engine(url, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime.now(UTC).replace(microsecond=0))


@pytest.fixture
def email_backend() -> AsyncMock:
    """Email backend that records sends and reports success."""
    backend = AsyncMock(spec=EmailBackend)
    backend.send.return_value = True
    return backend


@pytest.fixture
def manager(email_backend: AsyncMock, clock: FrozenClock) -> VerificationTokenManager:
    """Token manager with a 30 minute TTL and 2 minute cooldown."""
    config = VerificationConfig(
        app_url=TEST_APP_URL,
        ttl=timedelta(minutes=30),
        cooldown=timedelta(minutes=2),
    )
    return VerificationTokenManager(config, emails=EmailService(backend=email_backend), clock=clock)


@pytest.fixture
async def client(
    session: AsyncSession, manager: VerificationTokenManager
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_verification_manager] = lambda: manager

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def user(session: AsyncSession) -> User:
    """Create an unverified test user with a password."""
    user = User(email="test@example.com", name="Test User", password=hash_password(TEST_PASSWORD))
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def verified_user(session: AsyncSession) -> User:
    """Create a verified test user with a password."""
    user = User(
        email="verified@example.com",
        name="Verified User",
        password=hash_password(TEST_PASSWORD),
        email_verified=datetime.now(UTC) - timedelta(days=1),
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
def user_token(verified_user: User) -> str:
    """Create a JWT token for the verified test user."""
    return create_token(verified_user)


@pytest.fixture
def auth_headers(user_token: str) -> dict[str, str]:
    """Create authorization headers for the verified test user."""
    return {"Authorization": f"Bearer {user_token}"}


async def tokens_for(session: AsyncSession, identifier: str) -> list[VerificationToken]:
    """All stored tokens for an identifier, newest expiry first."""
    result = await session.execute(
        select(VerificationToken)
        .where(VerificationToken.identifier == identifier)
        .order_by(VerificationToken.expires.desc())  # type: ignore[attr-defined]
    )
    return list(result.scalars().all())


# Helper to make authenticated requests
class AuthenticatedClient:
    """Wrapper for AsyncClient with authentication."""

    def __init__(self, client: AsyncClient, headers: dict[str, str]):
        self.client = client
        self.headers = headers

    async def get(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)


@pytest.fixture
def authenticated_client(client: AsyncClient, auth_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated test client."""
    return AuthenticatedClient(client, auth_headers)
