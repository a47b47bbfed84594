"""add_negotiation_tables

Revision ID: 3b9e6d41c2a7
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3b9e6d41c2a7"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SERVICE_TYPES = (
    "FLAT_TYRE",
    "OUT_OF_FUEL",
    "CAR_BATTERY",
    "TOW_TRUCK",
    "OTHER_CAR_PROBLEMS",
    "EMERGENCY",
    "SUPPORT",
)
REQUEST_STATUSES = (
    "REQUEST_CREATED",
    "REQUEST_ACCEPTED",
    "EMPLOYEE_ASSIGNED",
    "QUOTE_RECEIVED",
    "QUOTE_DECLINED",
    "QUOTE_ACCEPTED",
    "IN_PROGRESS",
    "COMPLETED",
    "CANCELLED",
)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "employee_simulation",
        sa.Column("employee_number", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "employee_accounts",
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("real_name", sa.String(), nullable=True),
        sa.Column("employee_role", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "simulated_employees_blacklist",
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("employee_name", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "request_id", "employee_name", "user_id", name="uq_blacklist_entry"
        ),
    )
    op.create_index(
        "ix_simulated_employees_blacklist_request_id",
        "simulated_employees_blacklist",
        ["request_id"],
    )
    op.create_index(
        "ix_simulated_employees_blacklist_user_id",
        "simulated_employees_blacklist",
        ["user_id"],
    )
    op.create_table(
        "user_history",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column(
            "service_type", sa.Enum(*SERVICE_TYPES, name="servicetype"), nullable=False
        ),
        sa.Column(
            "status", sa.Enum(*REQUEST_STATUSES, name="requeststatus"), nullable=False
        ),
        sa.Column("employee_name", sa.String(), nullable=True),
        sa.Column("price_paid", sa.Integer(), nullable=True),
        sa.Column("service_fee", sa.Integer(), nullable=True),
        sa.Column("total_price", sa.Integer(), nullable=True),
        sa.Column("request_date", sa.DateTime(), nullable=False),
        sa.Column("completion_date", sa.DateTime(), nullable=False),
        sa.Column(
            "location",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("decline_reason", sa.String(), nullable=True),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_history_user_id", "user_history", ["user_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_user_history_user_id", table_name="user_history")
    op.drop_table("user_history")
    op.drop_index(
        "ix_simulated_employees_blacklist_user_id",
        table_name="simulated_employees_blacklist",
    )
    op.drop_index(
        "ix_simulated_employees_blacklist_request_id",
        table_name="simulated_employees_blacklist",
    )
    op.drop_table("simulated_employees_blacklist")
    op.drop_table("employee_accounts")
    op.drop_table("employee_simulation")
    sa.Enum(name="requeststatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="servicetype").drop(op.get_bind(), checkfirst=True)
