"""Tests for the request/script transaction helpers in ``visitgate.database``."""

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from visitgate import database
from visitgate.database import get_db, session_scope
from visitgate.errors import StoreUnavailable

pytestmark = pytest.mark.asyncio


def _connection_lost() -> OperationalError:
    return OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


@pytest.fixture
def session_factory(test_engine, monkeypatch):
    """Point the module-level session factory at the test database."""
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "async_session_factory", factory)
    return factory


@pytest_asyncio.fixture
async def schemaless_store(monkeypatch):
    """Sessions bound to a database with no tables, so every query fails."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    monkeypatch.setattr(
        database,
        "async_session_factory",
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
    )
    yield engine
    await engine.dispose()


class TestGetDb:
    async def test_yields_session(self, session_factory):
        gen = get_db()
        session = await gen.__anext__()
        assert isinstance(session, AsyncSession)
        await gen.aclose()

    async def test_connection_error_becomes_store_unavailable(self, session_factory):
        gen = get_db()
        await gen.__anext__()

        with pytest.raises(StoreUnavailable) as exc_info:
            await gen.athrow(_connection_lost())

        assert exc_info.value.code == "store_unavailable"
        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.__cause__, OperationalError)

    async def test_interface_error_becomes_store_unavailable(self, session_factory):
        gen = get_db()
        await gen.__anext__()

        with pytest.raises(StoreUnavailable):
            await gen.athrow(InterfaceError("SELECT 1", {}, ConnectionResetError("reset by peer")))

    async def test_other_errors_propagate_unchanged(self, session_factory):
        gen = get_db()
        await gen.__anext__()

        with pytest.raises(ValueError, match="bad input"):
            await gen.athrow(ValueError("bad input"))

    async def test_failing_query_becomes_store_unavailable(self, schemaless_store):
        gen = get_db()
        session = await gen.__anext__()
        with pytest.raises(OperationalError) as query_error:
            await session.execute(text("SELECT id FROM invitations"))

        with pytest.raises(StoreUnavailable):
            await gen.athrow(query_error.value)


class TestSessionScope:
    async def test_commits_on_success(self, session_factory):
        async with session_scope() as session:
            assert isinstance(session, AsyncSession)
            await session.execute(text("SELECT 1"))

    async def test_connection_error_becomes_store_unavailable(self, session_factory):
        with pytest.raises(StoreUnavailable):
            async with session_scope():
                raise _connection_lost()

    async def test_failing_query_becomes_store_unavailable(self, schemaless_store):
        with pytest.raises(StoreUnavailable):
            async with session_scope() as session:
                await session.execute(text("SELECT id FROM invitations"))

    async def test_other_errors_propagate_unchanged(self, session_factory):
        with pytest.raises(KeyError):
            async with session_scope():
                raise KeyError("missing")
