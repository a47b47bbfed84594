from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.base.models import BaseDbModel


class SimulatedEmployee(BaseDbModel):
    __tablename__ = "employee_simulation"

    employee_number: Mapped[int] = mapped_column(Integer, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False)


class EmployeeAccount(BaseDbModel):
    __tablename__ = "employee_accounts"

    username: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    real_name: Mapped[str | None] = mapped_column(String, nullable=True)
    employee_role: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
