"""Domain events published by the lifecycle store.

UI layers decide how (or whether) to surface these; the store never renders
anything itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from src.base.models import utcnow
from src.request.interface import AssignedEmployee, Quote, ServiceType


@dataclass(frozen=True, kw_only=True)
class RequestEvent:
    request_id: UUID
    occurred_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, kw_only=True)
class RequestCreated(RequestEvent):
    service_type: ServiceType


@dataclass(frozen=True, kw_only=True)
class EmployeeAssigned(RequestEvent):
    employee: AssignedEmployee


@dataclass(frozen=True, kw_only=True)
class QuoteReceived(RequestEvent):
    quote: Quote


@dataclass(frozen=True, kw_only=True)
class QuoteDeclined(RequestEvent):
    quote: Quote
    revision_expected: bool


@dataclass(frozen=True, kw_only=True)
class EmployeeBlacklisted(RequestEvent):
    employee_name: str


@dataclass(frozen=True, kw_only=True)
class QuoteAccepted(RequestEvent):
    quote: Quote


@dataclass(frozen=True, kw_only=True)
class ServiceStarted(RequestEvent):
    employee_name: str
    eta_seconds: float


@dataclass(frozen=True, kw_only=True)
class RequestCompleted(RequestEvent):
    price_paid: int | None


@dataclass(frozen=True, kw_only=True)
class RequestCancelled(RequestEvent):
    reason: str
