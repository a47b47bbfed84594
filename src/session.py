"""Per-session wiring of the negotiation core.

Each user session gets its own store instead of sharing a module-level one.
"""

import random

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.base.db import async_session
from src.blacklist.ledger import SqlBlacklistLedger
from src.employee import create_pool
from src.employee.interface import PoolMode
from src.history.recorder import CompletionRecorder, SqlHistorySink
from src.request.matcher import EmployeeMatcher
from src.request.store import RequestLifecycleStore
from src.request.timing import NegotiationTimings


def create_session_store(
    user_id: str,
    *,
    username: str | None = None,
    mode: PoolMode = PoolMode.SIMULATION,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    timings: NegotiationTimings | None = None,
    rng: random.Random | None = None,
) -> RequestLifecycleStore:
    """Build a database-backed lifecycle store for one user session."""
    session_factory = session_factory or async_session
    ledger = SqlBlacklistLedger(session_factory)
    matcher = EmployeeMatcher(create_pool(mode, session_factory, rng=rng), ledger, rng=rng)
    recorder = CompletionRecorder(SqlHistorySink(session_factory), username=username)
    return RequestLifecycleStore(
        user_id,
        matcher,
        ledger,
        recorder,
        timings=timings or NegotiationTimings.from_env(),
        rng=rng,
    )
