"""
Deal lifecycle manager.

The only component that opens and closes transactions. Each use case reads,
validates, computes and writes inside the session it was given, then
commits once. Any failure rolls the whole unit back, so a deal write never
commits without its audit entry and vice versa.

Retrying after ConflictError or TransactionFailure is the caller's call;
nothing partial was committed, so a retry is safe.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.errors import (
    ConflictError,
    DealEngineError,
    NotFoundError,
    ValidationError,
    translate_db_error,
)
from rea_deals.models import (
    PAYOUT_ORDER,
    AuditAction,
    AuditLog,
    AvailabilityWindow,
    Deal,
    DealType,
    HolderType,
    PayoutStatus,
    utcnow,
)
from rea_deals.schemas.availability import ReservationRequest
from rea_deals.schemas.deal import (
    BrokerageUpdateRequest,
    CommissionSummary,
    CommissionSummaryFilters,
    DealCreateRequest,
    DealUpdateRequest,
)
from rea_deals.services.audit_recorder import AuditRecorder
from rea_deals.services.availability import AvailabilityGuard, status_after_commitment
from rea_deals.services.collaborators import (
    ExpenseAggregator,
    PropertyLookup,
    SqlExpenseAggregator,
    SqlPropertyLookup,
)
from rea_deals.services.commission import (
    calculate_branch_commission,
    calculate_branch_profit,
    calculate_brokerage_commission,
)
from rea_deals.services.deal_repository import DealRepository
from rea_deals.utils.audit import snapshot

logger = logging.getLogger(__name__)

DEALS_ENTITY = "deals"
WINDOWS_ENTITY = "availability_windows"


def patch_values(
    patch: Union[DealUpdateRequest, BrokerageUpdateRequest],
    drop_empty: bool = False,
) -> dict[str, Any]:
    """
    Fields the patch actually carries.

    Null fields are absent. With drop_empty, empty strings are absent too.
    """
    values = patch.model_dump(exclude_none=True)
    if drop_empty:
        values = {k: v for k, v in values.items() if v != ""}
    return values


def merge_patch(deal: Deal, values: dict[str, Any]) -> Deal:
    """
    Apply patch values onto a deal.

    The patch value wins for every field it carries; a field the patch
    does not carry keeps the stored value.
    """
    for field, value in values.items():
        setattr(deal, field, value)
    return deal


def resolve(values: dict[str, Any], deal: Deal, field: str) -> Any:
    """Patch value if present, else the stored one."""
    return values[field] if field in values else getattr(deal, field)


def check_payout_transition(current: PayoutStatus, target: PayoutStatus) -> None:
    """pending -> approved -> paid; forward only, repeats are no-ops."""
    if PAYOUT_ORDER.index(target) < PAYOUT_ORDER.index(current):
        raise ValidationError(
            f"Payout status cannot move back from {current.value} to {target.value}",
            code="INVALID_PAYOUT_TRANSITION",
        )


def check_payout_details(status: PayoutStatus, payout_date: Optional[datetime], invoice_no: Optional[str]) -> None:
    if status == PayoutStatus.PAID and (not payout_date or not invoice_no):
        raise ValidationError(
            "Payout date and invoice number are required when status is paid",
            code="PAYOUT_DETAILS_REQUIRED",
        )


class DealLifecycleManager:
    """
    Orchestrates CreateDeal, UpdateDeal, UpdateBrokerageFields and the
    commission summary over one explicit session.

    Collaborators default to SQL-backed implementations on the same session;
    pass others to read properties or expenses from elsewhere.
    """

    def __init__(
        self,
        db: AsyncSession,
        properties: Optional[PropertyLookup] = None,
        expenses: Optional[ExpenseAggregator] = None,
        guard: Optional[AvailabilityGuard] = None,
    ):
        self.db = db
        self.properties = properties or SqlPropertyLookup(db)
        self.expenses = expenses or SqlExpenseAggregator(db)
        self.guard = guard or AvailabilityGuard(db)
        self.deals = DealRepository(db)
        self.audit = AuditRecorder(db)

    # ── Create ───────────────────────────────────────────

    async def create_deal(
        self,
        data: DealCreateRequest,
        actor_id: str,
        origin_address: Optional[str] = None,
    ) -> Deal:
        """Create a deal with its commissions and a CREATE audit entry."""
        async with self._transaction():
            prop = await self.properties.get_property(data.property_id)
            if prop is None:
                raise NotFoundError("Property not found", code="PROPERTY_NOT_FOUND")

            deal = Deal(
                id=uuid.uuid4(),
                property_id=data.property_id,
                customer_id=data.customer_id,
                type=data.type,
                deal_type=data.deal_type,
                sell_price=data.sell_price,
                buy_price=data.buy_price,
                notes=data.notes,
                payout_status=PayoutStatus.PENDING,
                created_by_id=str(actor_id),
            )

            # Brokerage commission from the property's agreed percent
            if data.deal_type == DealType.BROKERAGE and data.sell_price is not None:
                if prop.brokerage_commission_percent is None:
                    raise ValidationError(
                        "Property has no brokerage commission percent",
                        code="BROKERAGE_PERCENT_REQUIRED",
                    )
                deal.brokerage_percent = prop.brokerage_commission_percent
                deal.brokerage_amount = calculate_brokerage_commission(
                    data.sell_price,
                    prop.brokerage_commission_percent,
                )

            # Branch sales split net profit after expenses
            if prop.is_branch_owned and data.sell_price is not None and data.buy_price is not None:
                total_expenses = await self.expenses.sum_expenses(data.property_id)
                profit = calculate_branch_profit(data.sell_price, data.buy_price, total_expenses)
                if profit > 0:
                    breakdown = calculate_branch_commission(profit)
                    deal.profit = profit
                    deal.rea_commission = breakdown.rea_invest_commission
                    deal.branch_commission = breakdown.branch_commission

            if data.occupancy_start is not None:
                reservation = await self.guard.reserve(
                    property_id=data.property_id,
                    starts_at=data.occupancy_start,
                    ends_at=data.occupancy_end,
                    holder_type=HolderType.DEAL,
                    holder_id=deal.id,
                    property=prop,
                    target_status=status_after_commitment(data.type),
                )
                if not reservation.ok:
                    raise ConflictError(
                        "Property is already committed for an overlapping window",
                        code="AVAILABILITY_CONFLICT",
                        details={"holder_id": str(reservation.conflict.holder_id)},
                    )

            now = utcnow()
            deal.closed_at = now
            deal.created_at = now
            deal.updated_at = now
            await self.deals.create(deal)

            await self.audit.record(
                actor_id=actor_id,
                action=AuditAction.CREATE,
                entity_type=DEALS_ENTITY,
                entity_id=deal.id,
                before=None,
                after=snapshot(deal),
                origin_address=origin_address,
            )

        logger.info(f"Deal {deal.id} created by {actor_id} ({deal.type.value}/{deal.deal_type.value})")
        return deal

    # ── Update ───────────────────────────────────────────

    async def update_deal(
        self,
        deal_id: uuid.UUID,
        patch: DealUpdateRequest,
        actor_id: str,
        origin_address: Optional[str] = None,
    ) -> Deal:
        """
        Apply a patch, recomputing brokerage_amount when the sale price or
        percent of a brokerage deal changes.

        Profit and branch commission are fixed at creation and are not
        recomputed here even if prices change.
        """
        async with self._transaction():
            deal = await self._load_deal(deal_id)
            await self._apply_update(
                deal,
                patch_values(patch),
                actor_id,
                AuditAction.UPDATE,
                origin_address,
            )

        logger.info(f"Deal {deal.id} updated by {actor_id}")
        return deal

    async def update_brokerage_fields(
        self,
        deal_id: uuid.UUID,
        patch: BrokerageUpdateRequest,
        actor_id: str,
        origin_address: Optional[str] = None,
    ) -> Deal:
        """Partial update of brokerage and payout fields of a brokerage deal."""
        async with self._transaction():
            deal = await self._load_deal(deal_id)
            if deal.deal_type != DealType.BROKERAGE:
                raise ConflictError(
                    "This operation is only for brokerage deals",
                    code="NOT_BROKERAGE_DEAL",
                )

            await self._apply_update(
                deal,
                patch_values(patch, drop_empty=True),
                actor_id,
                AuditAction.UPDATE_BROKERAGE,
                origin_address,
            )

        logger.info(f"Brokerage deal {deal.id} updated by {actor_id}")
        return deal

    async def _apply_update(
        self,
        deal: Deal,
        values: dict[str, Any],
        actor_id: str,
        action: AuditAction,
        origin_address: Optional[str],
    ) -> None:
        """Shared recompute-validate-save-audit path of every update."""
        # Validate the merged record before touching the stored one
        payout_status = resolve(values, deal, "payout_status")
        if "payout_status" in values:
            check_payout_transition(deal.payout_status, payout_status)
        check_payout_details(
            payout_status,
            resolve(values, deal, "payout_date"),
            resolve(values, deal, "invoice_no"),
        )

        recalculate = "sell_price" in values or "brokerage_percent" in values
        if recalculate and deal.deal_type == DealType.BROKERAGE:
            sale_price = resolve(values, deal, "sell_price")
            percent = resolve(values, deal, "brokerage_percent")
            if sale_price is not None and percent is not None:
                values["brokerage_amount"] = calculate_brokerage_commission(sale_price, percent)

        before = snapshot(deal)
        merge_patch(deal, values)
        deal.updated_at = utcnow()
        await self.deals.save(deal)

        await self.audit.record(
            actor_id=actor_id,
            action=action,
            entity_type=DEALS_ENTITY,
            entity_id=deal.id,
            before=before,
            after=snapshot(deal),
            origin_address=origin_address,
        )

    # ── Availability ─────────────────────────────────────

    async def reserve_window(
        self,
        property_id: uuid.UUID,
        request: ReservationRequest,
        actor_id: str,
        origin_address: Optional[str] = None,
    ) -> AvailabilityWindow:
        """Reserve a window for a deal or booking held outside this engine."""
        async with self._transaction():
            prop = await self.properties.get_property(property_id)
            if prop is None:
                raise NotFoundError("Property not found", code="PROPERTY_NOT_FOUND")

            reservation = await self.guard.reserve(
                property_id=property_id,
                starts_at=request.starts_at,
                ends_at=request.ends_at,
                holder_type=request.holder_type,
                holder_id=request.holder_id,
                property=prop,
            )
            if not reservation.ok:
                raise ConflictError(
                    "Property is already committed for an overlapping window",
                    code="AVAILABILITY_CONFLICT",
                    details={"holder_id": str(reservation.conflict.holder_id)},
                )

            await self.audit.record(
                actor_id=actor_id,
                action=AuditAction.RESERVE,
                entity_type=WINDOWS_ENTITY,
                entity_id=reservation.window.id,
                before=None,
                after=snapshot(reservation.window),
                origin_address=origin_address,
            )

        return reservation.window

    async def release_window(
        self,
        property_id: uuid.UUID,
        holder_id: uuid.UUID,
        actor_id: str,
        origin_address: Optional[str] = None,
    ) -> int:
        """Release a holder's windows. Returns how many were removed (0 is fine)."""
        async with self._transaction():
            windows = await self.guard.release(property_id, holder_id)
            for window in windows:
                await self.audit.record(
                    actor_id=actor_id,
                    action=AuditAction.RELEASE,
                    entity_type=WINDOWS_ENTITY,
                    entity_id=window.id,
                    before=snapshot(window),
                    after=None,
                    origin_address=origin_address,
                )

        return len(windows)

    async def list_windows(self, property_id: uuid.UUID) -> list[AvailabilityWindow]:
        return await self.guard.windows(property_id)

    # ── Reads ────────────────────────────────────────────

    async def get_deal(self, deal_id: uuid.UUID) -> Deal:
        deal = await self.deals.get(deal_id)
        if deal is None:
            raise NotFoundError("Deal not found", code="DEAL_NOT_FOUND")
        return deal

    async def get_audit_trail(self, deal_id: uuid.UUID) -> list[AuditLog]:
        await self.get_deal(deal_id)
        return await self.audit.list_for_entity(DEALS_ENTITY, deal_id)

    async def summarize(self, filters: CommissionSummaryFilters) -> CommissionSummary:
        return await self.deals.summarize(filters)

    # ── Internals ────────────────────────────────────────

    async def _load_deal(self, deal_id: uuid.UUID) -> Deal:
        deal = await self.deals.get(deal_id, for_update=True)
        if deal is None:
            raise NotFoundError("Deal not found", code="DEAL_NOT_FOUND")
        return deal

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Commit on success; roll back and raise a typed error on failure."""
        try:
            yield self.db
            await self.db.commit()
        except DealEngineError as e:
            await self.db.rollback()
            if isinstance(e, (ValidationError, ConflictError, NotFoundError)):
                logger.warning(f"Deal operation rejected: {e.code} {e.message}")
            else:
                logger.error(f"Deal operation failed: {e.code} {e.message}")
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise translate_db_error(e) from e
        except Exception:
            await self.db.rollback()
            logger.exception("Unexpected error in deal operation")
            raise
