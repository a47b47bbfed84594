import random

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.blacklist.ledger import SqlBlacklistLedger
from src.employee.interface import Employee
from src.employee.pool import StaticEmployeePool
from src.history.models import UserHistory
from src.history.recorder import SERVICE_FEE, CompletionRecorder, SqlHistorySink
from src.request.interface import Location, RequestStatus, ServiceType
from src.request.matcher import EmployeeMatcher
from src.request.store import USER_CANCELLED_REASON, RequestLifecycleStore
from src.request.timing import NegotiationTimings


def _store(
    session_factory: async_sessionmaker[AsyncSession],
    roster: list[Employee] | None = None,
) -> RequestLifecycleStore:
    rng = random.Random(21)
    ledger = SqlBlacklistLedger(session_factory)
    pool = StaticEmployeePool(roster, rng=rng) if roster else StaticEmployeePool(rng=rng)
    return RequestLifecycleStore(
        "user-1",
        EmployeeMatcher(pool, ledger, rng=rng),
        ledger,
        CompletionRecorder(SqlHistorySink(session_factory), username="ivan"),
        timings=NegotiationTimings.instant(),
        rng=rng,
    )


async def _history(
    session_factory: async_sessionmaker[AsyncSession],
) -> list[UserHistory]:
    async with session_factory() as session:
        return list((await session.execute(select(UserHistory))).scalars().all())


class TestSqlHistory:
    async def test_completed_request_written_once(
        self, test_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        store = _store(test_session_factory)
        await store.create_request(ServiceType.CAR_BATTERY, {"lat": 42.69, "lng": 23.32})
        await store.wait_idle()
        quoted = store.get_current_request()
        assert quoted is not None
        assert quoted.current_quote is not None
        amount = quoted.current_quote.amount

        await store.accept_quote()
        await store.wait_idle()

        rows = await _history(test_session_factory)
        assert len(rows) == 1
        row = rows[0]
        assert row.status is RequestStatus.COMPLETED
        assert row.service_type is ServiceType.CAR_BATTERY
        assert row.user_id == "user-1"
        assert row.username == "ivan"
        assert row.price_paid == amount
        assert row.total_price == amount + SERVICE_FEE
        assert row.location == Location(lat=42.69, lng=23.32)
        assert row.completion_date >= row.request_date

    async def test_cancelled_request_written_without_price(
        self, test_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        store = _store(test_session_factory)
        await store.create_request(ServiceType.EMERGENCY, {"lat": 42.69, "lng": 23.32})
        await store.wait_idle()

        await store.cancel_request()
        await store.wait_idle()

        rows = await _history(test_session_factory)
        assert len(rows) == 1
        assert rows[0].status is RequestStatus.CANCELLED
        assert rows[0].price_paid is None
        assert rows[0].decline_reason == USER_CANCELLED_REASON

    async def test_rejected_employee_persisted_then_cleared(
        self, test_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        roster = [
            Employee(id="1", name="Ivan Petrov"),
            Employee(id="2", name="Elena Dimitrova"),
        ]
        store = _store(test_session_factory, roster)
        ledger = SqlBlacklistLedger(test_session_factory)
        request_id = await store.create_request(
            ServiceType.FLAT_TYRE, {"lat": 42.69, "lng": 23.32}
        )
        await store.wait_idle()
        first = store.get_current_request()
        assert first is not None
        assert first.assigned_employee is not None

        await store.decline_quote()
        await store.wait_idle()
        await store.decline_quote()
        await store.wait_idle()

        assert await ledger.get(request_id) == {first.assigned_employee.name}

        await store.cancel_request()

        assert await ledger.get(request_id) == set()
