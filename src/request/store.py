from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping
from dataclasses import replace
from functools import partial
from typing import Any
from uuid import UUID, uuid4

from pydantic import ValidationError

from src.base.models import utcnow
from src.blacklist.ledger import BlacklistLedger
from src.history.recorder import CompletionRecorder
from src.request.events import (
    EmployeeAssigned,
    EmployeeBlacklisted,
    QuoteAccepted,
    QuoteDeclined,
    QuoteReceived,
    RequestCancelled,
    RequestCompleted,
    RequestCreated,
    RequestEvent,
    ServiceStarted,
)
from src.request.interface import (
    InvalidInputError,
    Location,
    Quote,
    RequestStatus,
    ServiceRequest,
    ServiceType,
)
from src.request.matcher import EmployeeMatcher
from src.request.timers import RequestTimers
from src.request.timing import NegotiationTimings

logger = logging.getLogger(__name__)

USER_CANCELLED_REASON = "Cancelled by user"
NO_TECHNICIAN_REASON = "No technician available"

RequestListener = Callable[[ServiceRequest | None], None]
EventListener = Callable[[RequestEvent], None]


class RequestLifecycleStore:
    """
    Owns the single active service request of one user session.

    Caller actions validate the current status, apply their synchronous
    transition and hand any follow-up (matching, quoting, dispatch) to
    per-request timers. Every state change is published to request
    listeners as a fresh snapshot, in registration order.

    Out-of-order actions (accepting without an outstanding quote, declining
    while a revision is pending, ...) are logged and ignored.
    """

    def __init__(
        self,
        user_id: str,
        matcher: EmployeeMatcher,
        ledger: BlacklistLedger,
        recorder: CompletionRecorder,
        *,
        timings: NegotiationTimings | None = None,
        timers: RequestTimers | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._user_id = user_id
        self._matcher = matcher
        self._ledger = ledger
        self._recorder = recorder
        self._timings = timings or NegotiationTimings()
        self._timers = timers or RequestTimers()
        self._rng = rng or random.Random()
        self._current: ServiceRequest | None = None
        self._listeners: list[RequestListener] = []
        self._event_listeners: list[EventListener] = []

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def timers(self) -> RequestTimers:
        return self._timers

    # ── Observation ──

    def get_current_request(self) -> ServiceRequest | None:
        return self._current

    def subscribe(self, listener: RequestListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return partial(_remove, self._listeners, listener)

    def subscribe_events(self, listener: EventListener) -> Callable[[], None]:
        self._event_listeners.append(listener)
        return partial(_remove, self._event_listeners, listener)

    async def wait_idle(self) -> None:
        """Wait for all scheduled follow-up work to settle."""
        await self._timers.drain()

    # ── Caller API ──

    async def create_request(
        self,
        service_type: ServiceType | str,
        location: Location | Mapping[str, Any] | None,
        message: str = "",
    ) -> UUID:
        request_type = _parse_service_type(service_type)
        user_location = _parse_location(location)

        current = self._current
        if current is not None and not current.status.is_terminal:
            raise InvalidInputError(
                f"Request {current.id} is still {current.status.value}"
            )
        # A replaced completed request keeps its timers so its history write
        # and blacklist clear finish; its release is a no-op once replaced.

        now = utcnow()
        request = ServiceRequest(
            id=uuid4(),
            type=request_type,
            user_location=user_location,
            user_id=self._user_id,
            message=message,
            status=RequestStatus.REQUEST_ACCEPTED,
            created_at=now,
            updated_at=now,
        )
        self._publish(request)
        self._emit(RequestCreated(request_id=request.id, service_type=request_type))
        logger.info(
            "Created %s request %s for user %s",
            request_type.value,
            request.id,
            self._user_id,
        )

        self._schedule_matching(request.id)
        return request.id

    async def accept_quote(self) -> None:
        request = self._current
        if (
            request is None
            or request.status is not RequestStatus.QUOTE_RECEIVED
            or request.current_quote is None
        ):
            logger.warning(
                "Ignoring accept_quote: no outstanding quote (status=%s)",
                _status_name(request),
            )
            return

        quote = request.current_quote
        request = self._transition(
            request,
            status=RequestStatus.QUOTE_ACCEPTED,
            current_quote=None,
            agreed_price=quote.amount,
        )
        self._emit(QuoteAccepted(request_id=request.id, quote=quote))
        self._timers.schedule(
            request.id,
            self._timings.dispatch_delay,
            partial(self._start_service, request.id),
        )

    async def decline_quote(self) -> None:
        request = self._current
        if (
            request is None
            or request.status is not RequestStatus.QUOTE_RECEIVED
            or request.current_quote is None
            or request.assigned_employee is None
        ):
            logger.warning(
                "Ignoring decline_quote: no outstanding quote (status=%s)",
                _status_name(request),
            )
            return

        quote = request.current_quote
        if request.decline_count == 0 and not request.has_received_revision:
            request = self._transition(
                request,
                status=RequestStatus.QUOTE_DECLINED,
                decline_count=request.decline_count + 1,
                current_quote=None,
                declined_quote=quote,
            )
            self._emit(
                QuoteDeclined(request_id=request.id, quote=quote, revision_expected=True)
            )
            self._timers.schedule(
                request.id,
                self._timings.revision_delay,
                partial(self._send_revised_quote, request.id),
            )
            return

        self._emit(
            QuoteDeclined(request_id=request.id, quote=quote, revision_expected=False)
        )
        self._blacklist_and_rematch(request, request.assigned_employee.name)

    async def cancel_request(self) -> None:
        request = self._current
        if request is None or request.status.is_terminal:
            logger.info(
                "Ignoring cancel_request: no active request (status=%s)",
                _status_name(request),
            )
            return

        await self._finish_cancelled(request, USER_CANCELLED_REASON)

    # ── Scheduled steps ──

    def _schedule_matching(self, request_id: UUID) -> None:
        self._timers.schedule(
            request_id,
            self._timings.match_delay,
            partial(self._match_employee, request_id),
        )

    async def _match_employee(self, request_id: UUID) -> None:
        request = self._active(request_id, RequestStatus.REQUEST_ACCEPTED)
        if request is None:
            return

        employee = await self._matcher.find_available_employee(request)

        # The request may have been cancelled while the pool was loading.
        request = self._active(request_id, RequestStatus.REQUEST_ACCEPTED)
        if request is None:
            return

        if employee is None:
            await self._finish_cancelled(request, NO_TECHNICIAN_REASON)
            return

        request = self._transition(
            request,
            status=RequestStatus.EMPLOYEE_ASSIGNED,
            assigned_employee=employee,
            decline_count=0,
            has_received_revision=False,
        )
        self._emit(EmployeeAssigned(request_id=request_id, employee=employee))
        self._timers.schedule(
            request_id,
            self._rng.uniform(*self._timings.quote_delay),
            partial(self._send_quote, request_id),
        )

    async def _send_quote(self, request_id: UUID) -> None:
        request = self._active(request_id, RequestStatus.EMPLOYEE_ASSIGNED)
        if request is None or request.assigned_employee is None:
            return

        quote = Quote(
            amount=self._matcher.generate_quote(request.type),
            employee_name=request.assigned_employee.name,
        )
        self._transition(request, status=RequestStatus.QUOTE_RECEIVED, current_quote=quote)
        self._emit(QuoteReceived(request_id=request_id, quote=quote))

    async def _send_revised_quote(self, request_id: UUID) -> None:
        request = self._active(request_id, RequestStatus.QUOTE_DECLINED)
        if (
            request is None
            or request.declined_quote is None
            or request.assigned_employee is None
        ):
            return

        quote = Quote(
            amount=self._matcher.generate_revised_quote(request.declined_quote.amount),
            employee_name=request.assigned_employee.name,
            is_revised=True,
        )
        self._transition(
            request,
            status=RequestStatus.QUOTE_RECEIVED,
            current_quote=quote,
            declined_quote=None,
            has_received_revision=True,
        )
        self._emit(QuoteReceived(request_id=request_id, quote=quote))

    def _blacklist_and_rematch(
        self, request: ServiceRequest, employee_name: str
    ) -> None:
        blacklisted = request.blacklisted_employees
        if employee_name not in blacklisted:
            blacklisted = (*blacklisted, employee_name)

        request = self._transition(
            request,
            status=RequestStatus.REQUEST_ACCEPTED,
            assigned_employee=None,
            current_quote=None,
            declined_quote=None,
            decline_count=0,
            has_received_revision=False,
            blacklisted_employees=blacklisted,
        )
        self._emit(EmployeeBlacklisted(request_id=request.id, employee_name=employee_name))
        logger.info(
            "Employee %s blacklisted for request %s, rematching",
            employee_name,
            request.id,
        )
        self._timers.schedule(
            request.id,
            self._timings.match_delay,
            partial(self._persist_blacklist_and_rematch, request.id, employee_name),
        )

    async def _persist_blacklist_and_rematch(
        self, request_id: UUID, employee_name: str
    ) -> None:
        try:
            await self._ledger.add(request_id, employee_name, self._user_id)
        except Exception:
            # The snapshot's own blacklist still excludes the employee.
            logger.exception(
                "Failed to persist blacklist entry %s for request %s",
                employee_name,
                request_id,
            )
        await self._match_employee(request_id)

    async def _start_service(self, request_id: UUID) -> None:
        request = self._active(request_id, RequestStatus.QUOTE_ACCEPTED)
        if request is None or request.assigned_employee is None:
            return

        request = self._transition(request, status=RequestStatus.IN_PROGRESS)
        self._emit(
            ServiceStarted(
                request_id=request_id,
                employee_name=request.assigned_employee.name,
                eta_seconds=self._timings.service_duration,
            )
        )
        self._timers.schedule(
            request_id,
            self._timings.service_duration,
            partial(self._complete, request_id),
        )

    async def _complete(self, request_id: UUID) -> None:
        request = self._active(request_id, RequestStatus.IN_PROGRESS)
        if request is None:
            return

        request = self._transition(request, status=RequestStatus.COMPLETED)
        self._emit(RequestCompleted(request_id=request_id, price_paid=request.agreed_price))
        logger.info("Request %s completed", request_id)

        await self._recorder.record(request)
        await self._clear_blacklist(request_id)
        self._timers.schedule(
            request_id,
            self._timings.completed_linger,
            partial(self._release_completed, request_id),
        )

    async def _release_completed(self, request_id: UUID) -> None:
        current = self._current
        if (
            current is not None
            and current.id == request_id
            and current.status is RequestStatus.COMPLETED
        ):
            self._publish(None)

    async def _finish_cancelled(self, request: ServiceRequest, reason: str) -> None:
        self._timers.cancel(request.id)
        request = self._transition(
            request,
            status=RequestStatus.CANCELLED,
            current_quote=None,
            declined_quote=None,
            cancel_reason=reason,
        )
        self._emit(RequestCancelled(request_id=request.id, reason=reason))
        self._publish(None)
        logger.info("Request %s cancelled: %s", request.id, reason)

        await self._clear_blacklist(request.id)
        await self._recorder.record(request)

    async def _clear_blacklist(self, request_id: UUID) -> None:
        try:
            await self._ledger.clear(request_id)
        except Exception:
            logger.exception("Failed to clear blacklist for request %s", request_id)

    # ── State plumbing ──

    def _active(
        self, request_id: UUID, status: RequestStatus
    ) -> ServiceRequest | None:
        current = self._current
        if current is None or current.id != request_id:
            logger.debug("Request %s is no longer current", request_id)
            return None
        if current.status is not status:
            logger.debug(
                "Request %s is %s, expected %s",
                request_id,
                current.status.value,
                status.value,
            )
            return None
        return current

    def _transition(self, request: ServiceRequest, **changes: Any) -> ServiceRequest:
        updated = replace(request, updated_at=utcnow(), **changes)
        self._publish(updated)
        return updated

    def _publish(self, request: ServiceRequest | None) -> None:
        self._current = request
        for listener in list(self._listeners):
            try:
                listener(request)
            except Exception:
                logger.exception("Request listener %r failed", listener)

    def _emit(self, event: RequestEvent) -> None:
        for listener in list(self._event_listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener %r failed", listener)


def _remove(listeners: list[Any], listener: Any) -> None:
    if listener in listeners:
        listeners.remove(listener)


def _parse_service_type(value: ServiceType | str) -> ServiceType:
    if isinstance(value, ServiceType):
        return value
    try:
        return ServiceType(value)
    except ValueError:
        raise InvalidInputError(f"Unknown service type: {value!r}") from None


def _parse_location(value: Location | Mapping[str, Any] | None) -> Location:
    if value is None:
        raise InvalidInputError("A location is required")
    if isinstance(value, Location):
        return value
    try:
        return Location.model_validate(value)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid location: {exc}") from exc


def _status_name(request: ServiceRequest | None) -> str:
    return request.status.value if request is not None else "none"
