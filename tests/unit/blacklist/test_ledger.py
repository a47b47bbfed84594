from datetime import UTC, datetime, timedelta
from uuid import uuid4

from src.blacklist.ledger import BLACKLIST_TTL, InMemoryBlacklistLedger


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class TestInMemoryBlacklistLedger:
    async def test_add_and_get(self) -> None:
        ledger = InMemoryBlacklistLedger()
        rid = uuid4()

        await ledger.add(rid, "Ivan Petrov", "user-1")
        await ledger.add(rid, "Elena Dimitrova", "user-1")

        assert await ledger.get(rid) == {"Ivan Petrov", "Elena Dimitrova"}

    async def test_get_unknown_request_is_empty(self) -> None:
        assert await InMemoryBlacklistLedger().get(uuid4()) == set()

    async def test_add_is_idempotent(self) -> None:
        clock = _Clock()
        ledger = InMemoryBlacklistLedger(clock)
        rid = uuid4()

        await ledger.add(rid, "Ivan Petrov", "user-1")
        clock.advance(timedelta(hours=1))
        await ledger.add(rid, "Ivan Petrov", "user-1")

        entries = await ledger.entries_for_user("user-1")
        assert len(entries) == 1
        # The original timestamp is kept.
        assert entries[0].created_at == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    async def test_clear_only_touches_one_request(self) -> None:
        ledger = InMemoryBlacklistLedger()
        first, second = uuid4(), uuid4()
        await ledger.add(first, "Ivan Petrov", "user-1")
        await ledger.add(first, "Elena Dimitrova", "user-1")
        await ledger.add(second, "Ivan Petrov", "user-1")

        assert await ledger.clear(first) == 2
        assert await ledger.get(first) == set()
        assert await ledger.get(second) == {"Ivan Petrov"}

    async def test_clear_twice(self) -> None:
        ledger = InMemoryBlacklistLedger()
        rid = uuid4()
        await ledger.add(rid, "Ivan Petrov", "user-1")

        assert await ledger.clear(rid) == 1
        assert await ledger.clear(rid) == 0

    async def test_cleanup_expired(self) -> None:
        clock = _Clock()
        ledger = InMemoryBlacklistLedger(clock)
        old, fresh = uuid4(), uuid4()
        await ledger.add(old, "Ivan Petrov", "user-1")
        clock.advance(timedelta(hours=20))
        await ledger.add(fresh, "Elena Dimitrova", "user-1")
        clock.advance(timedelta(hours=5))

        removed = await ledger.cleanup_expired()

        assert removed == 1
        assert await ledger.get(old) == set()
        assert await ledger.get(fresh) == {"Elena Dimitrova"}

    async def test_cleanup_with_custom_age(self) -> None:
        clock = _Clock()
        ledger = InMemoryBlacklistLedger(clock)
        await ledger.add(uuid4(), "Ivan Petrov", "user-1")
        clock.advance(timedelta(minutes=10))

        assert await ledger.cleanup_expired(timedelta(minutes=5)) == 1

    async def test_nothing_expires_within_ttl(self) -> None:
        clock = _Clock()
        ledger = InMemoryBlacklistLedger(clock)
        await ledger.add(uuid4(), "Ivan Petrov", "user-1")
        clock.advance(BLACKLIST_TTL - timedelta(seconds=1))

        assert await ledger.cleanup_expired() == 0

    async def test_entries_for_user_newest_first(self) -> None:
        clock = _Clock()
        ledger = InMemoryBlacklistLedger(clock)
        rid = uuid4()
        await ledger.add(rid, "Ivan Petrov", "user-1")
        clock.advance(timedelta(minutes=1))
        await ledger.add(rid, "Elena Dimitrova", "user-1")
        await ledger.add(uuid4(), "Georgi Ivanov", "user-2")

        entries = await ledger.entries_for_user("user-1")

        assert [e.employee_name for e in entries] == ["Elena Dimitrova", "Ivan Petrov"]
        assert all(e.request_id == rid for e in entries)
        assert all(e.user_id == "user-1" for e in entries)
