import random
from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from src.base.models import BaseDbModel
from src.blacklist.ledger import InMemoryBlacklistLedger
from src.employee.pool import StaticEmployeePool
from src.history.recorder import CompletionRecorder, InMemoryHistorySink
from src.request.matcher import EmployeeMatcher
from src.request.store import RequestLifecycleStore
from src.request.timing import NegotiationTimings


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def ledger() -> InMemoryBlacklistLedger:
    return InMemoryBlacklistLedger()


@pytest.fixture
def history_sink() -> InMemoryHistorySink:
    return InMemoryHistorySink()


@pytest.fixture
def pool(rng: random.Random) -> StaticEmployeePool:
    return StaticEmployeePool(rng=rng)


@pytest.fixture
def store(
    pool: StaticEmployeePool,
    ledger: InMemoryBlacklistLedger,
    history_sink: InMemoryHistorySink,
    rng: random.Random,
) -> RequestLifecycleStore:
    return RequestLifecycleStore(
        "user-1",
        EmployeeMatcher(pool, ledger, rng=rng),
        ledger,
        CompletionRecorder(history_sink, username="tester"),
        timings=NegotiationTimings.instant(),
        rng=rng,
    )


@pytest.fixture(scope="session")
def postgres_url() -> Generator[str]:
    with PostgresContainer("postgres:17") as pg:
        # Convert sync URL to async (postgresql:// -> postgresql+asyncpg://)
        sync_url = pg.get_connection_url()
        yield sync_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://")


@pytest.fixture
async def db_engine(postgres_url: str) -> AsyncGenerator[AsyncEngine]:
    # Import all models so metadata knows about them
    import src.blacklist.models  # noqa: F401
    import src.employee.models  # noqa: F401
    import src.history.models  # noqa: F401

    engine = create_async_engine(postgres_url)
    async with engine.begin() as conn:
        await conn.run_sync(BaseDbModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(BaseDbModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    session_factory = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_session_factory(
    db_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)
