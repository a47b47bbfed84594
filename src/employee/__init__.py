import random

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.employee.interface import EmployeePoolProvider, PoolMode
from src.employee.pool import RealLifeEmployeePool, SimulatedEmployeePool

_POOL_FACTORIES: dict[
    PoolMode, type[SimulatedEmployeePool] | type[RealLifeEmployeePool]
] = {
    PoolMode.SIMULATION: SimulatedEmployeePool,
    PoolMode.REAL_LIFE: RealLifeEmployeePool,
}


def create_pool(
    mode: PoolMode,
    session_factory: async_sessionmaker[AsyncSession],
    rng: random.Random | None = None,
) -> EmployeePoolProvider:
    """Create the employee pool for a session's mode."""
    cls = _POOL_FACTORIES[mode]
    return cls(session_factory, rng=rng)
