"""
Read-only collaborator boundaries: property lookup and expense totals.

The listings subsystem owns both tables. The engine only reads them, inside
the transaction of the operation that needs them.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.errors import translate_db_error
from rea_deals.models import Expense, ListingType, Property


@dataclass(frozen=True)
class PropertySnapshot:
    """The property fields commission math depends on, read once per call."""

    id: uuid.UUID
    listing_type: str
    brokerage_commission_percent: Optional[Decimal] = None
    status: Optional[str] = None

    @property
    def is_branch_owned(self) -> bool:
        return self.listing_type == ListingType.BRANCH_OWNED.value


class PropertyLookup(Protocol):
    async def get_property(self, property_id: uuid.UUID) -> Optional[PropertySnapshot]:
        ...


class ExpenseAggregator(Protocol):
    async def sum_expenses(self, property_id: uuid.UUID) -> Decimal:
        ...


class SqlPropertyLookup:
    """PropertyLookup backed by the shared ``properties`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_property(self, property_id: uuid.UUID) -> Optional[PropertySnapshot]:
        try:
            row = await self.db.get(Property, property_id)
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e

        if row is None:
            return None

        return PropertySnapshot(
            id=row.id,
            listing_type=row.listing_type,
            brokerage_commission_percent=row.brokerage_commission_percent,
            status=row.status,
        )


class SqlExpenseAggregator:
    """ExpenseAggregator backed by the shared ``expenses`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def sum_expenses(self, property_id: uuid.UUID) -> Decimal:
        try:
            total = await self.db.scalar(
                select(func.coalesce(func.sum(Expense.amount), 0))
                .where(Expense.property_id == property_id)
            )
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e

        # SQLite hands back floats for SUM over NUMERIC
        return Decimal(str(total or 0))
