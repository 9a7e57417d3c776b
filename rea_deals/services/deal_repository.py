"""
Persistence boundary for Deal records.

Create, fetch and save deals inside the caller's session, plus the query
builder behind the commission summary report. There is no delete.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.errors import translate_db_error
from rea_deals.models import Deal, Property
from rea_deals.schemas.deal import CommissionSummary, CommissionSummaryFilters


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def build_summary_query(filters: CommissionSummaryFilters) -> Select:
    """Aggregate closed deals, ANDing every filter that is present."""
    query = (
        select(
            func.count(Deal.id).label("total_deals"),
            func.coalesce(func.sum(Deal.sell_price), 0).label("total_sales"),
            func.coalesce(func.sum(Deal.brokerage_amount), 0).label("total_brokerage_commission"),
            func.coalesce(func.sum(Deal.rea_commission), 0).label("total_rea_commission"),
            func.coalesce(func.sum(Deal.branch_commission), 0).label("total_branch_commission"),
        )
        .select_from(Deal)
        .outerjoin(Property, Deal.property_id == Property.id)
        .where(Deal.closed_at.is_not(None))
    )

    if filters.from_date:
        query = query.where(Deal.closed_at >= filters.from_date)

    if filters.to_date:
        query = query.where(Deal.closed_at <= filters.to_date)

    if filters.deal_type:
        query = query.where(Deal.deal_type == filters.deal_type)

    if filters.listing_type:
        query = query.where(Property.listing_type == filters.listing_type.value)

    return query


class DealRepository:
    """Deal storage bound to one session (one transaction)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, deal: Deal) -> Deal:
        self.db.add(deal)
        await self._flush()
        return deal

    async def get(self, deal_id: uuid.UUID, for_update: bool = False) -> Optional[Deal]:
        query = select(Deal).where(Deal.id == deal_id)
        if for_update:
            query = query.with_for_update()

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        return result.scalar_one_or_none()

    async def save(self, deal: Deal) -> Deal:
        await self._flush()
        return deal

    async def summarize(self, filters: CommissionSummaryFilters) -> CommissionSummary:
        try:
            result = await self.db.execute(build_summary_query(filters))
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        row = result.one()

        brokerage = _decimal(row.total_brokerage_commission)
        rea = _decimal(row.total_rea_commission)
        branch = _decimal(row.total_branch_commission)

        return CommissionSummary(
            total_deals=row.total_deals or 0,
            total_sales=_decimal(row.total_sales),
            total_brokerage_commission=brokerage,
            total_rea_commission=rea,
            total_branch_commission=branch,
            total_commission=brokerage + rea + branch,
        )

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
