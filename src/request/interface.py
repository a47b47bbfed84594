from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InvalidInputError(ValueError):
    """Raised when a request cannot be created from the caller's input."""


class ServiceType(enum.Enum):
    FLAT_TYRE = "flat-tyre"
    OUT_OF_FUEL = "out-of-fuel"
    CAR_BATTERY = "car-battery"
    TOW_TRUCK = "tow-truck"
    OTHER_CAR_PROBLEMS = "other-car-problems"
    EMERGENCY = "emergency"
    SUPPORT = "support"


class RequestStatus(enum.Enum):
    REQUEST_CREATED = "request_created"
    REQUEST_ACCEPTED = "request_accepted"
    EMPLOYEE_ASSIGNED = "employee_assigned"
    QUOTE_RECEIVED = "quote_received"
    QUOTE_DECLINED = "quote_declined"
    QUOTE_ACCEPTED = "quote_accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.COMPLETED, RequestStatus.CANCELLED)


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


@dataclass(frozen=True)
class AssignedEmployee:
    id: str
    name: str
    location: Location


@dataclass(frozen=True)
class Quote:
    amount: int
    employee_name: str
    is_revised: bool = False


@dataclass(frozen=True)
class ServiceRequest:
    """
    Immutable snapshot of a user's service request.

    The lifecycle store swaps in a new snapshot (via `dataclasses.replace`) on
    every transition, so listeners may keep references safely.
    """

    id: UUID
    type: ServiceType
    user_location: Location
    user_id: str
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    message: str = ""
    assigned_employee: AssignedEmployee | None = None
    current_quote: Quote | None = None
    # Quote under revision while status is QUOTE_DECLINED.
    declined_quote: Quote | None = None
    agreed_price: int | None = None
    decline_count: int = 0
    blacklisted_employees: tuple[str, ...] = ()
    has_received_revision: bool = False
    cancel_reason: str | None = None
