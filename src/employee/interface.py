from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Collection
from dataclasses import dataclass


class PoolMode(enum.Enum):
    SIMULATION = "simulation"
    REAL_LIFE = "real_life"


@dataclass(frozen=True)
class Employee:
    id: str
    name: str


class EmployeePoolProvider(ABC):
    @abstractmethod
    async def load_employees(self) -> None:
        """Refresh the cached pool of technicians."""

    @abstractmethod
    def get_random_employee(self, exclude: Collection[str]) -> Employee | None:
        """Pick uniformly among cached employees whose name or id is not excluded."""
