"""initial schema: users, categories, transactions, subscriptions

Revision ID: 0001_initial
Revises:
Create Date: 2025-11-10 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


RECURRENCE_TYPES = ("weekly", "monthly", "yearly")
SUBSCRIPTION_STATUSES = ("active", "canceled", "trialing", "past_due", "unpaid")
PLAN_TYPES = ("monthly", "annual", "trial")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(7), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "name", name="uq_category_user_name"),
    )
    op.create_table(
        "transaction",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("transaction_date", sa.DateTime(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("amount", sa.Numeric(18, 4), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("category.id", ondelete="SET NULL")),
        sa.Column("recurrence_type", sa.Enum(*RECURRENCE_TYPES, name="recurrence_type")),
        sa.Column("recurrence_end_date", sa.Date()),
        sa.Column("recurrence_id", sa.String(32)),
        sa.Column("is_original_recurrence", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_txn_user_date", "transaction", ["user_id", "transaction_date"])
    op.create_index("ix_txn_recurrence_id", "transaction", ["recurrence_id"])
    op.create_table(
        "subscription",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("customer_ref", sa.String(120)),
        sa.Column("provider_subscription_ref", sa.String(120)),
        sa.Column("status", sa.Enum(*SUBSCRIPTION_STATUSES, name="subscription_status"), nullable=False),
        sa.Column("plan_type", sa.Enum(*PLAN_TYPES, name="plan_type"), nullable=False),
        sa.Column("current_period_start", sa.DateTime()),
        sa.Column("current_period_end", sa.DateTime()),
        sa.Column("canceled_at", sa.DateTime()),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("subscription")
    op.drop_index("ix_txn_recurrence_id", table_name="transaction")
    op.drop_index("ix_txn_user_date", table_name="transaction")
    op.drop_table("transaction")
    op.drop_table("category")
    op.drop_table("user")
