"""Create batch link tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Create delivery_orders table
    op.create_table(
        "delivery_orders",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("formula_code", sa.String(50), nullable=False),
        sa.Column("volume_m3", sa.Numeric(8, 2), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=False),
        sa.Column("departure_time", sa.Time(), nullable=True),
        sa.Column("planned_time", sa.Time(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_orders_delivery_date", "delivery_orders", ["delivery_date"])

    # Create production_batches table
    op.create_table(
        "production_batches",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("batch_number", sa.String(50), nullable=True),
        sa.Column("batch_datetime", sa.DateTime(timezone=True), nullable=False),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("formula", sa.String(50), nullable=False),
        sa.Column("total_volume_m3", sa.Numeric(8, 2), nullable=False),
        sa.Column("operator_name", sa.String(255), nullable=True),
        sa.Column("link_status", sa.String(20), server_default="unlinked"),
        sa.Column(
            "linked_order_id",
            sa.String(100),
            sa.ForeignKey("delivery_orders.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("link_confidence", sa.Integer(), nullable=True),
        sa.Column("linked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("link_attempts", sa.Integer(), server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Create indexes for production_batches
    op.create_index("idx_batches_datetime", "production_batches", ["batch_datetime"])
    op.create_index("idx_batches_link_status", "production_batches", ["link_status"])
    op.create_index("idx_batches_linked_order", "production_batches", ["linked_order_id"])

    # Create link_candidates table
    op.create_table(
        "link_candidates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "batch_id",
            sa.String(100),
            sa.ForeignKey("production_batches.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("order_id", sa.String(100), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("time_score", sa.Integer(), nullable=False),
        sa.Column("client_score", sa.Integer(), nullable=False),
        sa.Column("volume_score", sa.Integer(), nullable=False),
        sa.Column("formula_score", sa.Integer(), nullable=False),
    )
    op.create_index("idx_candidates_batch", "link_candidates", ["batch_id", "rank"])


def downgrade() -> None:
    op.drop_table("link_candidates")
    op.drop_table("production_batches")
    op.drop_table("delivery_orders")
