import logging
from datetime import UTC, datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.history.recorder import (
    SERVICE_FEE,
    CompletionRecorder,
    HistorySink,
    InMemoryHistorySink,
    build_history_record,
)
from src.request.interface import (
    AssignedEmployee,
    Location,
    RequestStatus,
    ServiceRequest,
    ServiceType,
)

SOFIA = Location(lat=42.69, lng=23.32)
CREATED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _request(status: RequestStatus, **changes: object) -> ServiceRequest:
    fields: dict[str, object] = {
        "id": uuid4(),
        "type": ServiceType.TOW_TRUCK,
        "user_location": SOFIA,
        "user_id": "user-1",
        "status": status,
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
        "assigned_employee": AssignedEmployee(
            id="1", name="Ivan Petrov", location=SOFIA
        ),
    }
    fields.update(changes)
    return ServiceRequest(**fields)  # type: ignore[arg-type]


class TestBuildHistoryRecord:
    def test_completed_request_is_charged_with_fee(self) -> None:
        request = _request(RequestStatus.COMPLETED, agreed_price=95)

        record = build_history_record(request, "ivan")

        assert record.user_id == "user-1"
        assert record.username == "ivan"
        assert record.service_type is ServiceType.TOW_TRUCK
        assert record.status is RequestStatus.COMPLETED
        assert record.employee_name == "Ivan Petrov"
        assert record.price_paid == 95
        assert record.service_fee == SERVICE_FEE
        assert record.total_price == 95 + SERVICE_FEE
        assert record.request_date == CREATED_AT
        assert record.completion_date >= CREATED_AT
        assert record.location == SOFIA
        assert record.decline_reason is None

    def test_cancelled_request_has_no_prices(self) -> None:
        request = _request(
            RequestStatus.CANCELLED,
            assigned_employee=None,
            cancel_reason="Cancelled by user",
        )

        record = build_history_record(request)

        assert record.status is RequestStatus.CANCELLED
        assert record.employee_name is None
        assert record.price_paid is None
        assert record.service_fee is None
        assert record.total_price is None
        assert record.decline_reason == "Cancelled by user"


class TestCompletionRecorder:
    async def test_records_terminal_request(self) -> None:
        sink = InMemoryHistorySink()
        recorder = CompletionRecorder(sink, username="ivan")

        record = await recorder.record(_request(RequestStatus.COMPLETED, agreed_price=40))

        assert record is not None
        assert sink.entries == [record]

    async def test_skips_active_request(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = InMemoryHistorySink()
        recorder = CompletionRecorder(sink)

        with caplog.at_level(logging.WARNING):
            record = await recorder.record(_request(RequestStatus.IN_PROGRESS))

        assert record is None
        assert sink.entries == []
        assert "non-terminal" in caplog.text

    async def test_sink_failure_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        sink = AsyncMock(spec=HistorySink)
        sink.add_history_entry.side_effect = RuntimeError("disk full")
        recorder = CompletionRecorder(sink)

        with caplog.at_level(logging.ERROR):
            record = await recorder.record(_request(RequestStatus.CANCELLED))

        assert record is None
        sink.add_history_entry.assert_awaited_once()
        assert "Failed to write history" in caplog.text
