from __future__ import annotations

import logging
import random

from src.blacklist.ledger import BlacklistLedger
from src.employee.interface import EmployeePoolProvider
from src.request.interface import AssignedEmployee, Location, ServiceRequest, ServiceType
from src.request.quotes import generate_quote, generate_revised_quote

logger = logging.getLogger(__name__)

# Max offset (degrees) of a simulated technician from the customer.
LOCATION_JITTER = 0.01


class EmployeeMatcher:
    """Selects an eligible technician for a request and prices the job."""

    def __init__(
        self,
        pool: EmployeePoolProvider,
        ledger: BlacklistLedger,
        rng: random.Random | None = None,
    ) -> None:
        self._pool = pool
        self._ledger = ledger
        self._rng = rng or random.Random()

    async def find_available_employee(
        self, request: ServiceRequest
    ) -> AssignedEmployee | None:
        """
        Pick a random technician not blacklisted for this request.

        Returns None when nobody is eligible or the pool cannot be loaded;
        callers treat both as "no technician available".
        """
        excluded = set(request.blacklisted_employees)
        try:
            excluded |= await self._ledger.get(request.id)
        except Exception:
            logger.exception(
                "Reading blacklist for request %s failed, using local blacklist",
                request.id,
            )

        try:
            await self._pool.load_employees()
            employee = self._pool.get_random_employee(excluded)
        except Exception:
            logger.exception("Employee lookup failed for request %s", request.id)
            return None

        if employee is None:
            logger.info(
                "No eligible employee for request %s (excluded: %s)",
                request.id,
                sorted(excluded),
            )
            return None

        logger.info("Matched %s to request %s", employee.name, request.id)
        return AssignedEmployee(
            id=employee.id,
            name=employee.name,
            location=self._near(request.user_location),
        )

    def generate_quote(self, service_type: ServiceType) -> int:
        return generate_quote(service_type, self._rng)

    def generate_revised_quote(self, previous_amount: int) -> int:
        return generate_revised_quote(previous_amount, self._rng)

    def _near(self, location: Location) -> Location:
        return Location(
            lat=_clamp(
                location.lat + self._rng.uniform(-LOCATION_JITTER, LOCATION_JITTER),
                90,
            ),
            lng=_clamp(
                location.lng + self._rng.uniform(-LOCATION_JITTER, LOCATION_JITTER),
                180,
            ),
        )


def _clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))
