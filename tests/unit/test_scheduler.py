import logging
from datetime import timedelta
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.base.models import utcnow
from src.blacklist.models import BlacklistEntry
from src.scheduler import run_blacklist_cleanup


class TestRunBlacklistCleanup:
    async def test_removes_entries_older_than_a_day(
        self,
        db_session: AsyncSession,
        test_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        stale_request, fresh_request = uuid4(), uuid4()
        db_session.add_all(
            [
                BlacklistEntry(
                    request_id=stale_request,
                    employee_name="Ivan Petrov",
                    user_id="user-1",
                    created_at=utcnow() - timedelta(hours=25),
                ),
                BlacklistEntry(
                    request_id=fresh_request,
                    employee_name="Elena Dimitrova",
                    user_id="user-1",
                ),
            ]
        )
        await db_session.commit()

        with patch("src.scheduler.async_session", test_session_factory):
            removed = await run_blacklist_cleanup()

        assert removed == 1
        async with test_session_factory() as verify_session:
            remaining = (
                (await verify_session.execute(select(BlacklistEntry.request_id)))
                .scalars()
                .all()
            )
            assert remaining == [fresh_request]

    async def test_nothing_to_remove(
        self,
        db_session: AsyncSession,
        test_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        with patch("src.scheduler.async_session", test_session_factory):
            assert await run_blacklist_cleanup() == 0

    async def test_database_failure_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        broken = MagicMock(side_effect=RuntimeError("database unavailable"))

        with (
            patch("src.scheduler.async_session", broken),
            caplog.at_level(logging.ERROR),
        ):
            removed = await run_blacklist_cleanup()

        assert removed == 0
        assert "Blacklist cleanup failed" in caplog.text
