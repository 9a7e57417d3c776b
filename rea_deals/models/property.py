"""
Read-only mappings of tables owned by the listings subsystem.

The deal engine reads these at calculation time and never writes them.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rea_deals.models.base import Base, utcnow


class ListingType(str, Enum):
    """Who owns the listed property."""
    AGENCY_OWNED = "agency_owned"
    BRANCH_OWNED = "branch_owned"
    BROKERAGE = "brokerage"


class PropertyStatus(str, Enum):
    """Listing status."""
    PENDING = "pending"
    ACTIVE = "active"
    SOLD = "sold"
    RENTED = "rented"
    ARCHIVED = "archived"


class Property(Base):
    """Listing row (subset of columns the engine reads)."""

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    listing_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    brokerage_commission_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric,
        nullable=True,
    )
    status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, listing_type={self.listing_type})>"


class Expense(Base):
    """Recorded cost against a property."""

    __tablename__ = "expenses"

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
    amount: Mapped[Decimal] = mapped_column(
        Numeric,
        nullable=False,
    )
    spent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
