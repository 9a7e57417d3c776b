"""Initial deal engine schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create deals, audit log and availability tables."""

    # Deals table
    op.create_table(
        "deals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.Enum("buy", "sell", "rent", "brokerage", name="dealkind"), nullable=False),
        sa.Column("deal_type", sa.Enum("direct", "brokerage", name="dealtype"), nullable=False),
        sa.Column("sell_price", sa.Numeric(), nullable=True),
        sa.Column("buy_price", sa.Numeric(), nullable=True),
        sa.Column("brokerage_percent", sa.Numeric(), nullable=True),
        sa.Column("brokerage_amount", sa.Numeric(), nullable=True),
        sa.Column("profit", sa.Numeric(), nullable=True),
        sa.Column("rea_commission", sa.Numeric(), nullable=True),
        sa.Column("branch_commission", sa.Numeric(), nullable=True),
        sa.Column(
            "payout_status",
            sa.Enum("pending", "approved", "paid", name="payoutstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("payout_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invoice_no", sa.String(100), nullable=True),
        sa.Column("partner_agency", sa.String(200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "payout_status <> 'paid' OR (payout_date IS NOT NULL AND invoice_no IS NOT NULL)",
            name="ck_deals_paid_requires_payout_details",
        ),
    )
    op.create_index("ix_deals_property_id", "deals", ["property_id"])
    op.create_index("ix_deals_customer_id", "deals", ["customer_id"])
    op.create_index("ix_deals_type", "deals", ["type"])
    op.create_index("ix_deals_deal_type", "deals", ["deal_type"])
    op.create_index("ix_deals_payout_status", "deals", ["payout_status"])
    op.create_index("ix_deals_closed_at", "deals", ["closed_at"])

    # Audit logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column(
            "action",
            sa.Enum("CREATE", "UPDATE", "UPDATE_BROKERAGE", "RESERVE", "RELEASE", name="auditaction"),
            nullable=False,
        ),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("origin_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # Availability windows table
    op.create_table(
        "availability_windows",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("holder_type", sa.Enum("deal", "booking", name="holdertype"), nullable=False),
        sa.Column("holder_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("starts_at < ends_at", name="ck_availability_windows_ordered"),
    )
    op.create_index(
        "ix_availability_windows_property_range",
        "availability_windows",
        ["property_id", "starts_at", "ends_at"],
    )
    op.create_index(
        "ix_availability_windows_holder",
        "availability_windows",
        ["property_id", "holder_id"],
    )

    # No two windows of one property may overlap, whatever the isolation level
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            "ALTER TABLE availability_windows "
            "ADD CONSTRAINT ex_availability_windows_no_overlap "
            "EXCLUDE USING gist (property_id WITH =, tstzrange(starts_at, ends_at, '[)') WITH &&)"
        )

    # Availability locks table
    op.create_table(
        "availability_locks",
        sa.Column("property_id", sa.Uuid(), primary_key=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    """Drop engine tables. Audit history is lost."""
    op.drop_table("availability_locks")
    op.drop_table("availability_windows")
    op.drop_table("audit_logs")
    op.drop_table("deals")

    if op.get_bind().dialect.name == "postgresql":
        for enum_name in ("holdertype", "auditaction", "payoutstatus", "dealtype", "dealkind"):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
