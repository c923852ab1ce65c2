"""Shared fixtures for the rewards test suite"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import Settings
from app.models import Base
from app.repositories import InMemoryLedgerStore, SqlAlchemyLedgerStore
from tests.helpers import FakeMembershipClient, FakeTweetClient, build_services

@pytest.fixture
def settings() -> Settings:
    return Settings(
        DISCORD_BOT_TOKEN="test-bot-token",
        DISCORD_GUILD_ID="123456789",
        ADMIN_API_KEY="admin-secret",
        MEMBERSHIP_SWEEP_PAUSE_SECONDS=0,
        TWEET_SWEEP_DELAY_SECONDS=0,
        TWEET_SWEEP_BATCH_PAUSE_SECONDS=0,
        WALLET_TWEET_CHECK_PAUSE_SECONDS=0,
        RATE_LIMIT_ENABLED=False,
    )

@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    """
    Each test using this runs against both ledger implementations

    The SQL store gets a file database and a connection per session, so
    concurrent requests in a test contend the way separate workers do.
    """
    if request.param == "memory":
        yield InMemoryLedgerStore()
        return

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    yield SqlAlchemyLedgerStore(session_factory)
    await engine.dispose()

@pytest.fixture
def membership() -> FakeMembershipClient:
    return FakeMembershipClient()

@pytest.fixture
def tweets() -> FakeTweetClient:
    return FakeTweetClient()

@pytest.fixture
def services(store, settings, membership, tweets):
    return build_services(store, settings, membership, tweets)
