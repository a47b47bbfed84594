from __future__ import annotations

import logging
import random
from collections.abc import Collection, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.employee.interface import Employee, EmployeePoolProvider
from src.employee.models import EmployeeAccount, SimulatedEmployee

logger = logging.getLogger(__name__)

DEFAULT_ROSTER: tuple[Employee, ...] = (
    Employee(id="1", name="John Smith"),
    Employee(id="2", name="Maria Garcia"),
    Employee(id="3", name="Alex Johnson"),
    Employee(id="4", name="Sarah Wilson"),
    Employee(id="5", name="Michael Brown"),
)


class _CachedEmployeePool(EmployeePoolProvider):
    def __init__(self, rng: random.Random | None = None) -> None:
        self._employees: list[Employee] = []
        self._rng = rng or random.Random()

    @property
    def employees(self) -> tuple[Employee, ...]:
        return tuple(self._employees)

    def get_random_employee(self, exclude: Collection[str]) -> Employee | None:
        available = [
            e for e in self._employees if e.name not in exclude and e.id not in exclude
        ]
        if not available:
            logger.info(
                "No available employees (%d cached, %d excluded)",
                len(self._employees),
                len(exclude),
            )
            return None
        return self._rng.choice(available)


class StaticEmployeePool(_CachedEmployeePool):
    """Fixed in-process roster, no database involved."""

    def __init__(
        self,
        roster: Sequence[Employee] = DEFAULT_ROSTER,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(rng)
        self._roster = tuple(roster)

    async def load_employees(self) -> None:
        self._employees = list(self._roster)


class SimulatedEmployeePool(_CachedEmployeePool):
    """Technicians from the `employee_simulation` table.

    Falls back to the built-in roster when the table is empty or unreadable,
    so simulation sessions always have someone to match.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        rng: random.Random | None = None,
        fallback: Sequence[Employee] = DEFAULT_ROSTER,
    ) -> None:
        super().__init__(rng)
        self._session_factory = session_factory
        self._fallback = tuple(fallback)

    async def load_employees(self) -> None:
        try:
            async with self._session_factory() as session:
                stmt = select(SimulatedEmployee).order_by(
                    SimulatedEmployee.employee_number
                )
                rows = (await session.execute(stmt)).scalars().all()
        except Exception:
            logger.exception("Loading simulated employees failed, using fallback")
            self._employees = list(self._fallback)
            return

        if not rows:
            logger.info("No simulated employees stored, using fallback roster")
            self._employees = list(self._fallback)
            return

        self._employees = [Employee(id=str(r.id), name=r.full_name) for r in rows]
        logger.info("Loaded %d simulated employees", len(self._employees))


class RealLifeEmployeePool(_CachedEmployeePool):
    """Active, available accounts from `employee_accounts`."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(rng)
        self._session_factory = session_factory

    async def load_employees(self) -> None:
        async with self._session_factory() as session:
            stmt = (
                select(EmployeeAccount)
                .where(
                    EmployeeAccount.status == "active",
                    EmployeeAccount.is_available.is_(True),
                )
                .order_by(EmployeeAccount.username)
            )
            rows = (await session.execute(stmt)).scalars().all()

        self._employees = [
            Employee(id=str(r.id), name=r.real_name or r.username) for r in rows
        ]
        logger.info("Loaded %d real-life employees", len(self._employees))
