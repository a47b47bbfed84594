from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.base.models import utcnow
from src.history.models import UserHistory
from src.request.interface import Location, RequestStatus, ServiceRequest, ServiceType

logger = logging.getLogger(__name__)

SERVICE_FEE = 5


@dataclass(frozen=True)
class HistoryRecord:
    user_id: str
    username: str | None
    service_type: ServiceType
    status: RequestStatus
    employee_name: str | None
    price_paid: int | None
    service_fee: int | None
    total_price: int | None
    request_date: datetime
    completion_date: datetime
    location: Location
    decline_reason: str | None = None


class HistorySink(ABC):
    @abstractmethod
    async def add_history_entry(self, record: HistoryRecord) -> None: ...


class InMemoryHistorySink(HistorySink):
    def __init__(self) -> None:
        self.entries: list[HistoryRecord] = []

    async def add_history_entry(self, record: HistoryRecord) -> None:
        self.entries.append(record)


class SqlHistorySink(HistorySink):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_history_entry(self, record: HistoryRecord) -> None:
        async with self._session_factory() as session:
            session.add(
                UserHistory(
                    user_id=record.user_id,
                    username=record.username,
                    service_type=record.service_type,
                    status=record.status,
                    employee_name=record.employee_name,
                    price_paid=record.price_paid,
                    service_fee=record.service_fee,
                    total_price=record.total_price,
                    request_date=record.request_date,
                    completion_date=record.completion_date,
                    location=record.location,
                    decline_reason=record.decline_reason,
                )
            )
            await session.commit()


def build_history_record(
    request: ServiceRequest, username: str | None = None
) -> HistoryRecord:
    """
    Snapshot a finished request.

    Completed requests are charged the agreed price plus SERVICE_FEE.
    Cancelled ones carry no prices, only the cancel reason.
    """
    price = request.agreed_price if request.status is RequestStatus.COMPLETED else None
    fee = SERVICE_FEE if price is not None else None
    employee = request.assigned_employee

    return HistoryRecord(
        user_id=request.user_id,
        username=username,
        service_type=request.type,
        status=request.status,
        employee_name=employee.name if employee else None,
        price_paid=price,
        service_fee=fee,
        total_price=price + SERVICE_FEE if price is not None else None,
        request_date=request.created_at,
        completion_date=utcnow(),
        location=request.user_location,
        decline_reason=request.cancel_reason,
    )


class CompletionRecorder:
    """Best-effort history writer: failures are logged, never raised."""

    def __init__(self, sink: HistorySink, username: str | None = None) -> None:
        self._sink = sink
        self._username = username

    async def record(self, request: ServiceRequest) -> HistoryRecord | None:
        if not request.status.is_terminal:
            logger.warning(
                "Not recording request %s in non-terminal status %s",
                request.id,
                request.status.value,
            )
            return None

        record = build_history_record(request, self._username)
        try:
            await self._sink.add_history_entry(record)
        except Exception:
            logger.exception("Failed to write history for request %s", request.id)
            return None

        logger.info(
            "Recorded %s request %s in history", request.status.value, request.id
        )
        return record
