"""
Deal model: the financial record of a closed transaction.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Numeric, String, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from rea_deals.models.base import Base, TimestampMixin


class DealKind(str, Enum):
    """What happened to the property."""
    BUY = "buy"
    SELL = "sell"
    RENT = "rent"
    BROKERAGE = "brokerage"


class DealType(str, Enum):
    """Whether the agency sold directly or acted as intermediary."""
    DIRECT = "direct"
    BROKERAGE = "brokerage"


class PayoutStatus(str, Enum):
    """Commission payout progress. Moves forward only."""
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


PAYOUT_ORDER = [PayoutStatus.PENDING, PayoutStatus.APPROVED, PayoutStatus.PAID]


def _enum_column(enum_cls, name: str):
    return SQLAlchemyEnum(
        enum_cls,
        name=name,
        values_callable=lambda x: [e.value for e in x],
    )


class Deal(Base, TimestampMixin):
    """
    A closed sale, rental or brokered sale plus its derived commissions.

    Deals are never deleted. Every change goes through the lifecycle
    manager, which pairs it with an audit entry.

    Commission fields:
    - brokerage_percent / brokerage_amount: brokerage deals only
    - profit / rea_commission / branch_commission: branch-owned
      properties with a positive profit, computed once at creation
    """

    __tablename__ = "deals"
    __table_args__ = (
        CheckConstraint(
            "payout_status <> 'paid' OR (payout_date IS NOT NULL AND invoice_no IS NOT NULL)",
            name="ck_deals_paid_requires_payout_details",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    type: Mapped[DealKind] = mapped_column(
        _enum_column(DealKind, "dealkind"),
        nullable=False,
        index=True,
    )
    deal_type: Mapped[DealType] = mapped_column(
        _enum_column(DealType, "dealtype"),
        default=DealType.DIRECT,
        nullable=False,
        index=True,
    )

    # Prices
    sell_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
    )
    buy_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
    )

    # Brokerage commission
    brokerage_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
    )
    brokerage_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
    )

    # Branch profit split
    profit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
        comment="Sell minus buy minus expenses, branch-owned properties only",
    )
    rea_commission: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
    )
    branch_commission: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
    )

    # Payout
    payout_status: Mapped[PayoutStatus] = mapped_column(
        _enum_column(PayoutStatus, "payoutstatus"),
        default=PayoutStatus.PENDING,
        nullable=False,
        index=True,
    )
    payout_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    invoice_no: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    partner_agency: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    created_by_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, type={self.type}, deal_type={self.deal_type})>"
