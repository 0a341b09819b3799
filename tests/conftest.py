"""Shared test configuration and fixtures.

Each test runs against a fresh in-memory SQLite database (aiosqlite, one
shared connection through ``StaticPool``); tables are created before and
dropped after every test. The business clock is pinned to a fixed instant
for every test and can be moved with ``clock.advance``.
"""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from visitgate.api.v1.notifications import get_email_sender
from visitgate.auth.jwt import create_token_pair
from visitgate.auth.passwords import hash_password
from visitgate.database import Base, get_db
from visitgate.main import app
from visitgate.models.invitation import Invitation
from visitgate.models.location import Location
from visitgate.models.policy import Policy
from visitgate.models.user import User
from visitgate.services import invitations as invitation_service
from visitgate.services.acceptance import record_acceptance
from visitgate.services.clock import BusinessClock, set_clock

LA = ZoneInfo("America/Los_Angeles")

# Wednesday morning, after the 2025 spring-forward transition.
DEFAULT_NOW = datetime(2025, 3, 12, 10, 0, tzinfo=LA)


class FixedClock(BusinessClock):
    """Business clock whose "now" only moves when a test moves it."""

    def __init__(self, instant: datetime) -> None:
        super().__init__("America/Los_Angeles", now=lambda: self.instant)
        self.instant = instant

    def set(self, instant: datetime) -> None:
        self.instant = instant

    def advance(self, **delta: float) -> None:
        self.instant = self.instant + timedelta(**delta)


class RecordingSender:
    """Email sender double: records payloads, optionally failing for one recipient."""

    def __init__(self, fail_for: str | None = None) -> None:
        self.sent: list[dict] = []
        self.fail_for = fail_for

    async def send(self, payload: dict) -> None:
        if payload["to"] == self.fail_for:
            raise ConnectionError("SMTP relay unavailable")
        self.sent.append(payload)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clock() -> FixedClock:
    """Pin the process-wide business clock for the duration of a test."""
    fixed = FixedClock(DEFAULT_NOW)
    set_clock(fixed)
    yield fixed
    set_clock(None)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, sender: RecordingSender) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: sender

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Staff and locations
# ---------------------------------------------------------------------------


async def _make_user(db: AsyncSession, role: str, name: str) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{role}-{unique}@test.com",
        hashed_password=hash_password("testpass123"),
        name=name,
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    return user


def _headers(user: User) -> dict[str, str]:
    tokens = create_token_pair(str(user.id), user.role)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def host_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "host", "Dana Host")


@pytest_asyncio.fixture
async def other_host(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "host", "Riley Host")


@pytest_asyncio.fixture
async def security_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "security", "Lobby Security")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin", "Desk Admin")


@pytest_asyncio.fixture
async def host_headers(host_user: User) -> dict[str, str]:
    return _headers(host_user)


@pytest_asyncio.fixture
async def security_headers(security_user: User) -> dict[str, str]:
    return _headers(security_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict[str, str]:
    return _headers(admin_user)


@pytest_asyncio.fixture
async def location(db_session: AsyncSession) -> Location:
    loc = Location(name="Main Tower Lobby", is_active=True)
    db_session.add(loc)
    await db_session.flush()
    return loc


@pytest_asyncio.fixture
async def global_policy(db_session: AsyncSession) -> Policy:
    policy = Policy(location_id=None, guest_monthly_limit=3, host_concurrent_limit=3)
    db_session.add(policy)
    await db_session.flush()
    return policy


# ---------------------------------------------------------------------------
# Invitation helpers
# ---------------------------------------------------------------------------


InviteFactory = Callable[..., Awaitable[Invitation]]


@pytest.fixture
def ready_invitation(db_session: AsyncSession, host_user: User, location: Location, clock: FixedClock) -> InviteFactory:
    """Factory: an ACTIVATED invitation whose guest has accepted the terms."""

    async def _make(email: str | None = None, host: User | None = None) -> Invitation:
        invitation = await invitation_service.create_invitation(
            db_session,
            email=email or f"guest-{uuid.uuid4().hex[:8]}@test.com",
            host_id=(host or host_user).id,
            location_id=location.id,
            clock=clock,
        )
        await invitation_service.activate(db_session, invitation.id, clock)
        await record_acceptance(db_session, invitation.guest_id, invitation_id=invitation.id, clock=clock)
        return invitation

    return _make
