"""Test fixtures and configuration."""

import asyncio
import logging
import os
import sys
from uuid import uuid4

# Point settings at SQLite and disable Redis before any bursar import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ.pop("REDIS_URL", None)

import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from bursar import database
from bursar.database import Base
from bursar.logger import get_logger
from tests.fakes import InMemoryCacheStore

logger = get_logger(__name__)


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys/caplog capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=False),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """File-backed SQLite engine with the full schema, one per test.

    A file (not ``:memory:``) so the separate sessions opened by the report
    aggregator all see the same data.
    """
    from bursar import models  # noqa: F401

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bursar-test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    try:
        await asyncio.wait_for(engine.dispose(), timeout=10.0)
    except asyncio.TimeoutError:
        logger.error("Engine disposal timed out - connections may be leaked")


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine):
    """Route every ``get_db``/``get_session_maker`` call to the test engine."""
    test_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    previous = database.set_test_session_maker(test_maker)
    yield test_maker
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture(scope="function")
async def db(session_maker):
    """A session on the test database; tests commit or flush as they need."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_user(session_maker):
    """A committed user the bearer token resolves to."""
    from bursar.models import User

    async with session_maker() as user_session:
        suffix = uuid4().hex[:8]
        user = User(
            username=f"bursar-{suffix}",
            email=f"test-{suffix}@example.com",
            hashed_password="hashed",
        )
        user_session.add(user)
        await user_session.commit()
        await user_session.refresh(user)
    return user


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest_asyncio.fixture(scope="function")
async def app(session_maker, cache_store):
    """The FastAPI app with the in-memory cache store injected."""
    from bursar.deps import get_cache_store
    from bursar.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_cache_store] = lambda: cache_store
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app, test_user):
    """Authenticated async test client."""
    from bursar.security import create_access_token

    token = create_access_token(data={"sub": str(test_user.id)})
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as client_instance:
        yield client_instance


@pytest_asyncio.fixture(scope="function")
async def public_client(app):
    """Async test client without auth headers."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client_instance:
        yield client_instance
