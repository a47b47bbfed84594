from uuid import UUID

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.base.models import BaseDbModel


class BlacklistEntry(BaseDbModel):
    """Employee rejected by a user for one specific request."""

    __tablename__ = "simulated_employees_blacklist"
    __table_args__ = (
        UniqueConstraint(
            "request_id", "employee_name", "user_id", name="uq_blacklist_entry"
        ),
    )

    request_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
