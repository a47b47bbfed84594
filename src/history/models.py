from datetime import datetime

from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.base.models import BaseDbModel, UTCDateTime
from src.base.schemas import PydanticJSONB
from src.request.interface import Location, RequestStatus, ServiceType


class UserHistory(BaseDbModel):
    """Write-once record of a finished service request."""

    __tablename__ = "user_history"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(String, nullable=True)
    service_type: Mapped[ServiceType] = mapped_column(
        Enum(ServiceType), nullable=False
    )
    status: Mapped[RequestStatus] = mapped_column(Enum(RequestStatus), nullable=False)
    employee_name: Mapped[str | None] = mapped_column(String, nullable=True)
    price_paid: Mapped[int | None] = mapped_column(Integer, nullable=True)
    service_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    request_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    completion_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    location: Mapped[Location] = mapped_column(
        PydanticJSONB(Location), nullable=False
    )
    decline_reason: Mapped[str | None] = mapped_column(String, nullable=True)
