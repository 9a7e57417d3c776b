"""
Deal request/response schemas.

Request models are the typed input of each engine operation; they are
validated before any business logic runs.
"""

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from rea_deals.models.audit import AuditAction
from rea_deals.models.deal import DealKind, DealType, PayoutStatus
from rea_deals.models.property import ListingType

# Deal kinds that must carry a sell price
PRICED_KINDS = (DealKind.SELL, DealKind.BROKERAGE)


class DealCreateRequest(BaseModel):
    """Input of CreateDeal."""

    model_config = ConfigDict(extra="forbid")

    property_id: uuid.UUID
    customer_id: uuid.UUID
    type: DealKind
    sell_price: Optional[Decimal] = Field(None, ge=0)
    buy_price: Optional[Decimal] = Field(None, ge=0)
    deal_type: DealType = DealType.DIRECT
    notes: Optional[str] = Field(None, max_length=1000)

    # Optional occupancy commitment reserved together with the deal
    occupancy_start: Optional[AwareDatetime] = None
    occupancy_end: Optional[AwareDatetime] = None

    @model_validator(mode="after")
    def check_required_prices(self) -> "DealCreateRequest":
        if self.type in PRICED_KINDS and self.sell_price is None:
            raise ValueError(f"sell_price is required for {self.type.value} deals")
        if (self.occupancy_start is None) != (self.occupancy_end is None):
            raise ValueError("occupancy_start and occupancy_end must be given together")
        return self


class DealUpdateRequest(BaseModel):
    """
    Patch for UpdateDeal.

    Every field is optional; a field left out (or null) keeps the stored value.
    """

    model_config = ConfigDict(extra="forbid")

    sell_price: Optional[Decimal] = Field(None, ge=0)
    buy_price: Optional[Decimal] = Field(None, ge=0)
    brokerage_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    payout_status: Optional[PayoutStatus] = None
    payout_date: Optional[datetime] = None
    invoice_no: Optional[str] = Field(None, max_length=100)
    partner_agency: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=1000)


class BrokerageUpdateRequest(BaseModel):
    """Patch for UpdateBrokerageFields. Empty values are ignored."""

    model_config = ConfigDict(extra="forbid")

    brokerage_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    partner_agency: Optional[str] = Field(None, max_length=200)
    payout_status: Optional[PayoutStatus] = None
    payout_date: Optional[datetime] = None
    invoice_no: Optional[str] = Field(None, max_length=100)


class DealResponse(BaseModel):
    """Full deal record."""

    id: uuid.UUID
    property_id: uuid.UUID
    customer_id: uuid.UUID
    type: DealKind
    deal_type: DealType

    sell_price: Optional[Decimal] = None
    buy_price: Optional[Decimal] = None
    brokerage_percent: Optional[Decimal] = None
    brokerage_amount: Optional[Decimal] = None
    profit: Optional[Decimal] = None
    rea_commission: Optional[Decimal] = None
    branch_commission: Optional[Decimal] = None

    payout_status: PayoutStatus
    payout_date: Optional[datetime] = None
    invoice_no: Optional[str] = None
    partner_agency: Optional[str] = None
    notes: Optional[str] = None

    closed_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommissionSummaryFilters(BaseModel):
    """
    Filters of the commission summary; each one present is ANDed.

    Both date bounds are inclusive. A bare date covers that whole UTC day,
    so ``to_date=2026-06-30`` keeps deals closed at any time on the 30th.
    """

    from_date: Optional[Union[datetime, date]] = None
    to_date: Optional[Union[datetime, date]] = None
    deal_type: Optional[DealType] = None
    listing_type: Optional[ListingType] = None

    @field_validator("from_date", "to_date", mode="before")
    @classmethod
    def expand_whole_days(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str) and len(value) == 10:
            try:
                value = date.fromisoformat(value)
            except ValueError:
                return value
        if isinstance(value, date) and not isinstance(value, datetime):
            bound = time.min if info.field_name == "from_date" else time.max
            return datetime.combine(value, bound, tzinfo=timezone.utc)
        return value


class CommissionSummary(BaseModel):
    """Totals over closed deals. Sums default to 0, never null."""

    total_deals: int = 0
    total_sales: Decimal = Decimal("0")
    total_brokerage_commission: Decimal = Decimal("0")
    total_rea_commission: Decimal = Decimal("0")
    total_branch_commission: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")


class AuditLogResponse(BaseModel):
    """Audit trail entry."""

    id: uuid.UUID
    actor_id: str
    action: AuditAction
    entity_type: str
    entity_id: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    origin_address: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
