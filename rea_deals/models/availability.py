"""
Availability windows: time ranges a property is committed to one holder.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from rea_deals.models.base import Base, utcnow


class HolderType(str, Enum):
    """What holds the commitment."""
    DEAL = "deal"
    BOOKING = "booking"


class AvailabilityWindow(Base):
    """
    A reserved half-open range [starts_at, ends_at) on a property.

    On PostgreSQL the table also carries an exclusion constraint so no two
    rows for the same property can overlap (see the initial migration).
    """

    __tablename__ = "availability_windows"
    __table_args__ = (
        Index("ix_availability_windows_property_range", "property_id", "starts_at", "ends_at"),
        Index("ix_availability_windows_holder", "property_id", "holder_id"),
        CheckConstraint("starts_at < ends_at", name="ck_availability_windows_ordered"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
    )
    starts_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    ends_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    holder_type: Mapped[HolderType] = mapped_column(
        SQLAlchemyEnum(
            HolderType,
            name="holdertype",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    holder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<AvailabilityWindow(property_id={self.property_id}, "
            f"{self.starts_at}..{self.ends_at}, holder={self.holder_id})>"
        )


class AvailabilityLock(Base):
    """
    One row per property, locked before any overlap check.

    Concurrent reservers for the same property serialize on this row.
    """

    __tablename__ = "availability_locks"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
