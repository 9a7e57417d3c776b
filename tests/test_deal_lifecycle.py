"""
Tests for the deal lifecycle manager.

Covers:
- CreateDeal commission derivation (branch split, brokerage percent)
- UpdateDeal / UpdateBrokerageFields recompute and payout rules
- Audit entries written with every mutation, and none on rejection
- Occupancy reservation made together with a deal
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from rea_deals.errors import ConflictError, NotFoundError, ValidationError
from rea_deals.models import (
    AuditAction,
    AuditLog,
    AvailabilityWindow,
    Deal,
    DealKind,
    DealType,
    HolderType,
    ListingType,
    PayoutStatus,
    PropertyStatus,
)
from rea_deals.schemas import (
    BrokerageUpdateRequest,
    DealCreateRequest,
    DealUpdateRequest,
)
from rea_deals.services.deal_lifecycle import (
    DealLifecycleManager,
    check_payout_details,
    check_payout_transition,
    patch_values,
)
from rea_deals.utils.audit import snapshot

ACTOR = "user-1"
JUNE = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _create_request(property_id, **kwargs):
    defaults = {
        "property_id": property_id,
        "customer_id": uuid.uuid4(),
        "type": DealKind.SELL,
        "sell_price": Decimal("150000"),
    }
    defaults.update(kwargs)
    return DealCreateRequest(**defaults)


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


@pytest.fixture
def lifecycle(db_session):
    return DealLifecycleManager(db_session)


@pytest.fixture
async def branch_property_id(make_property, make_expense):
    prop = await make_property(listing_type=ListingType.BRANCH_OWNED)
    await make_expense(prop.id, "10000")
    return prop.id


@pytest.fixture
async def brokerage_property_id(make_property):
    prop = await make_property(
        listing_type=ListingType.BROKERAGE,
        brokerage_commission_percent=Decimal("5"),
    )
    return prop.id


@pytest.fixture
async def brokerage_deal(lifecycle, brokerage_property_id):
    return await lifecycle.create_deal(
        _create_request(
            brokerage_property_id,
            type=DealKind.BROKERAGE,
            deal_type=DealType.BROKERAGE,
            sell_price=Decimal("100000"),
        ),
        ACTOR,
    )


# ── Pure helpers ─────────────────────────────────────────


class TestPayoutRules:
    def test_forward_moves_allowed(self):
        check_payout_transition(PayoutStatus.PENDING, PayoutStatus.APPROVED)
        check_payout_transition(PayoutStatus.APPROVED, PayoutStatus.PAID)
        check_payout_transition(PayoutStatus.PENDING, PayoutStatus.PAID)

    def test_repeat_is_allowed(self):
        check_payout_transition(PayoutStatus.APPROVED, PayoutStatus.APPROVED)

    def test_backward_move_rejected(self):
        with pytest.raises(ValidationError) as exc:
            check_payout_transition(PayoutStatus.PAID, PayoutStatus.APPROVED)
        assert exc.value.code == "INVALID_PAYOUT_TRANSITION"

    def test_paid_requires_date_and_invoice(self):
        with pytest.raises(ValidationError) as exc:
            check_payout_details(PayoutStatus.PAID, JUNE, None)
        assert exc.value.code == "PAYOUT_DETAILS_REQUIRED"

        with pytest.raises(ValidationError):
            check_payout_details(PayoutStatus.PAID, None, "INV-1")

        check_payout_details(PayoutStatus.PAID, JUNE, "INV-1")
        check_payout_details(PayoutStatus.APPROVED, None, None)


class TestPatchValues:
    def test_null_fields_absent(self):
        values = patch_values(DealUpdateRequest(notes="hello"))
        assert values == {"notes": "hello"}

    def test_empty_strings_kept_without_drop_empty(self):
        values = patch_values(DealUpdateRequest(invoice_no=""))
        assert values == {"invoice_no": ""}

    def test_drop_empty(self):
        values = patch_values(
            BrokerageUpdateRequest(partner_agency="", brokerage_percent=Decimal("3")),
            drop_empty=True,
        )
        assert values == {"brokerage_percent": Decimal("3")}


# ── CreateDeal ───────────────────────────────────────────


class TestCreateDeal:
    async def test_branch_sale_splits_profit(self, lifecycle, branch_property_id):
        deal = await lifecycle.create_deal(
            _create_request(branch_property_id, buy_price=Decimal("100000")),
            ACTOR,
        )

        assert deal.profit == Decimal("40000")
        assert deal.rea_commission == Decimal("1000")
        assert deal.branch_commission == Decimal("1000")
        assert deal.brokerage_amount is None
        assert deal.payout_status == PayoutStatus.PENDING
        assert deal.closed_at is not None
        assert deal.created_by_id == ACTOR

    async def test_branch_sale_without_profit_has_no_split(self, lifecycle, branch_property_id):
        deal = await lifecycle.create_deal(
            _create_request(
                branch_property_id,
                sell_price=Decimal("105000"),
                buy_price=Decimal("100000"),
            ),
            ACTOR,
        )

        assert deal.profit is None
        assert deal.rea_commission is None
        assert deal.branch_commission is None

    async def test_agency_sale_has_no_split(self, lifecycle, make_property):
        prop = await make_property(listing_type=ListingType.AGENCY_OWNED)
        deal = await lifecycle.create_deal(
            _create_request(prop.id, buy_price=Decimal("100000")),
            ACTOR,
        )

        assert deal.profit is None
        assert deal.rea_commission is None

    async def test_brokerage_uses_property_percent(self, brokerage_deal):
        assert brokerage_deal.brokerage_percent == Decimal("5")
        assert brokerage_deal.brokerage_amount == Decimal("5000")
        assert brokerage_deal.deal_type == DealType.BROKERAGE

    async def test_brokerage_without_property_percent_rejected(self, lifecycle, db_session, make_property):
        prop = await make_property(listing_type=ListingType.BROKERAGE)

        with pytest.raises(ValidationError) as exc:
            await lifecycle.create_deal(
                _create_request(
                    prop.id,
                    type=DealKind.BROKERAGE,
                    deal_type=DealType.BROKERAGE,
                ),
                ACTOR,
            )

        assert exc.value.code == "BROKERAGE_PERCENT_REQUIRED"
        assert await _count(db_session, Deal) == 0
        assert await _count(db_session, AuditLog) == 0

    async def test_fractional_cents_survive_storage(self, lifecycle, session_factory, make_property):
        prop = await make_property(
            listing_type=ListingType.BROKERAGE,
            brokerage_commission_percent=Decimal("3.33"),
        )

        deal = await lifecycle.create_deal(
            _create_request(
                prop.id,
                type=DealKind.BROKERAGE,
                deal_type=DealType.BROKERAGE,
                sell_price=Decimal("100001.01"),
            ),
            ACTOR,
        )
        assert deal.brokerage_amount == Decimal("3330.033633")

        async with session_factory() as fresh:
            stored = await fresh.get(Deal, deal.id)
            entry = await fresh.scalar(select(AuditLog).where(AuditLog.entity_id == str(deal.id)))

        assert stored.brokerage_amount == deal.brokerage_amount
        assert stored.brokerage_percent == Decimal("3.33")
        assert stored.sell_price == Decimal("100001.01")
        assert Decimal(entry.after["brokerage_amount"]) == stored.brokerage_amount

    async def test_missing_property(self, lifecycle, db_session):
        with pytest.raises(NotFoundError) as exc:
            await lifecycle.create_deal(_create_request(uuid.uuid4()), ACTOR)

        assert exc.value.code == "PROPERTY_NOT_FOUND"
        assert await _count(db_session, Deal) == 0

    async def test_writes_create_audit_entry(self, lifecycle, db_session, branch_property_id):
        deal = await lifecycle.create_deal(
            _create_request(branch_property_id, buy_price=Decimal("100000")),
            ACTOR,
            origin_address="10.0.0.7",
        )

        entries = await lifecycle.get_audit_trail(deal.id)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == AuditAction.CREATE
        assert entry.actor_id == ACTOR
        assert entry.entity_type == "deals"
        assert entry.entity_id == str(deal.id)
        assert entry.before is None
        assert entry.after == snapshot(deal)
        assert entry.origin_address == "10.0.0.7"


# ── Occupancy ────────────────────────────────────────────


class TestCreateDealWithOccupancy:
    async def test_rent_deal_reserves_window(self, lifecycle, db_session, make_property):
        prop = await make_property()
        deal = await lifecycle.create_deal(
            _create_request(
                prop.id,
                type=DealKind.RENT,
                sell_price=None,
                occupancy_start=JUNE,
                occupancy_end=JUNE + timedelta(days=30),
            ),
            ACTOR,
        )

        windows = await lifecycle.list_windows(prop.id)
        assert len(windows) == 1
        assert windows[0].holder_type == HolderType.DEAL
        assert windows[0].holder_id == deal.id

    async def test_overlapping_deal_rejected(self, lifecycle, db_session, make_property):
        prop = await make_property()
        property_id = prop.id
        await lifecycle.create_deal(
            _create_request(
                property_id,
                type=DealKind.RENT,
                sell_price=None,
                occupancy_start=JUNE,
                occupancy_end=JUNE + timedelta(days=30),
            ),
            ACTOR,
        )

        with pytest.raises(ConflictError) as exc:
            await lifecycle.create_deal(
                _create_request(
                    property_id,
                    type=DealKind.RENT,
                    sell_price=None,
                    occupancy_start=JUNE + timedelta(days=29),
                    occupancy_end=JUNE + timedelta(days=60),
                ),
                ACTOR,
            )

        assert exc.value.code == "AVAILABILITY_CONFLICT"
        assert await _count(db_session, Deal) == 1
        assert await _count(db_session, AvailabilityWindow) == 1
        assert await _count(db_session, AuditLog) == 1

    async def test_sold_property_cannot_be_sold_again(self, lifecycle, db_session, make_property):
        prop = await make_property(status=PropertyStatus.SOLD)

        with pytest.raises(ConflictError) as exc:
            await lifecycle.create_deal(
                _create_request(
                    prop.id,
                    occupancy_start=JUNE,
                    occupancy_end=JUNE + timedelta(days=1),
                ),
                ACTOR,
            )

        assert exc.value.code == "INVALID_STATUS_TRANSITION"
        assert await _count(db_session, Deal) == 0


# ── UpdateDeal ───────────────────────────────────────────


class TestUpdateDeal:
    async def test_notes_only_leaves_commissions(self, lifecycle, branch_property_id):
        deal = await lifecycle.create_deal(
            _create_request(branch_property_id, buy_price=Decimal("100000")),
            ACTOR,
        )

        updated = await lifecycle.update_deal(deal.id, DealUpdateRequest(notes="keys handed over"), ACTOR)

        assert updated.notes == "keys handed over"
        assert updated.profit == Decimal("40000")
        assert updated.rea_commission == Decimal("1000")
        assert updated.branch_commission == Decimal("1000")
        assert updated.sell_price == Decimal("150000")

    async def test_notes_only_keeps_brokerage_amount(self, lifecycle, brokerage_deal):
        updated = await lifecycle.update_deal(
            brokerage_deal.id,
            DealUpdateRequest(notes="buyer financing confirmed"),
            ACTOR,
        )

        assert updated.notes == "buyer financing confirmed"
        assert updated.brokerage_percent == Decimal("5")
        assert updated.brokerage_amount == Decimal("5000")
        assert updated.sell_price == Decimal("100000")

    async def test_price_change_keeps_branch_split(self, lifecycle, branch_property_id):
        deal = await lifecycle.create_deal(
            _create_request(branch_property_id, buy_price=Decimal("100000")),
            ACTOR,
        )

        updated = await lifecycle.update_deal(
            deal.id,
            DealUpdateRequest(sell_price=Decimal("200000")),
            ACTOR,
        )

        assert updated.sell_price == Decimal("200000")
        assert updated.profit == Decimal("40000")
        assert updated.brokerage_amount is None

    async def test_brokerage_recomputed_on_price_change(self, lifecycle, brokerage_deal):
        updated = await lifecycle.update_deal(
            brokerage_deal.id,
            DealUpdateRequest(sell_price=Decimal("200000")),
            ACTOR,
        )
        assert updated.brokerage_amount == Decimal("10000")

    async def test_brokerage_recomputed_on_percent_change(self, lifecycle, brokerage_deal):
        updated = await lifecycle.update_deal(
            brokerage_deal.id,
            DealUpdateRequest(brokerage_percent=Decimal("4")),
            ACTOR,
        )
        assert updated.brokerage_percent == Decimal("4")
        assert updated.brokerage_amount == Decimal("4000")

    async def test_paid_without_invoice_writes_nothing(self, lifecycle, db_session, brokerage_deal):
        deal_id = brokerage_deal.id

        with pytest.raises(ValidationError) as exc:
            await lifecycle.update_deal(
                deal_id,
                DealUpdateRequest(payout_status=PayoutStatus.PAID, payout_date=JUNE),
                ACTOR,
            )

        assert exc.value.code == "PAYOUT_DETAILS_REQUIRED"
        assert await _count(db_session, AuditLog) == 1
        stored = await lifecycle.get_deal(deal_id)
        await db_session.refresh(stored)
        assert stored.payout_status == PayoutStatus.PENDING
        assert stored.payout_date is None

    async def test_paid_with_details(self, lifecycle, brokerage_deal):
        updated = await lifecycle.update_deal(
            brokerage_deal.id,
            DealUpdateRequest(
                payout_status=PayoutStatus.PAID,
                payout_date=JUNE,
                invoice_no="INV-2026-001",
            ),
            ACTOR,
        )
        assert updated.payout_status == PayoutStatus.PAID
        assert updated.invoice_no == "INV-2026-001"

    async def test_payout_cannot_move_back(self, lifecycle, brokerage_deal):
        deal_id = brokerage_deal.id
        await lifecycle.update_deal(deal_id, DealUpdateRequest(payout_status=PayoutStatus.APPROVED), ACTOR)

        with pytest.raises(ValidationError) as exc:
            await lifecycle.update_deal(deal_id, DealUpdateRequest(payout_status=PayoutStatus.PENDING), ACTOR)

        assert exc.value.code == "INVALID_PAYOUT_TRANSITION"

    async def test_audit_before_and_after(self, lifecycle, brokerage_deal):
        before = snapshot(brokerage_deal)

        updated = await lifecycle.update_deal(
            brokerage_deal.id,
            DealUpdateRequest(notes="signed"),
            ACTOR,
        )

        entries = await lifecycle.get_audit_trail(updated.id)
        assert [e.action for e in entries] == [AuditAction.CREATE, AuditAction.UPDATE]
        assert entries[1].before == before
        assert entries[1].after == snapshot(updated)
        assert entries[1].before["notes"] is None
        assert entries[1].after["notes"] == "signed"

    async def test_missing_deal(self, lifecycle):
        with pytest.raises(NotFoundError) as exc:
            await lifecycle.update_deal(uuid.uuid4(), DealUpdateRequest(notes="x"), ACTOR)
        assert exc.value.code == "DEAL_NOT_FOUND"


# ── UpdateBrokerageFields ────────────────────────────────


class TestUpdateBrokerageFields:
    async def test_percent_change_recomputes_amount(self, lifecycle, brokerage_deal):
        updated = await lifecycle.update_brokerage_fields(
            brokerage_deal.id,
            BrokerageUpdateRequest(brokerage_percent=Decimal("3"), partner_agency="Acme Realty"),
            ACTOR,
        )

        assert updated.brokerage_amount == Decimal("3000")
        assert updated.partner_agency == "Acme Realty"

        entries = await lifecycle.get_audit_trail(updated.id)
        assert entries[-1].action == AuditAction.UPDATE_BROKERAGE

    async def test_empty_values_ignored(self, lifecycle, brokerage_deal):
        deal_id = brokerage_deal.id
        await lifecycle.update_brokerage_fields(
            deal_id,
            BrokerageUpdateRequest(partner_agency="Acme Realty"),
            ACTOR,
        )

        updated = await lifecycle.update_brokerage_fields(
            deal_id,
            BrokerageUpdateRequest(partner_agency="", invoice_no="INV-7"),
            ACTOR,
        )

        assert updated.partner_agency == "Acme Realty"
        assert updated.invoice_no == "INV-7"
        assert updated.brokerage_amount == Decimal("5000")

    async def test_direct_deal_rejected(self, lifecycle, db_session, branch_property_id):
        deal = await lifecycle.create_deal(
            _create_request(branch_property_id, buy_price=Decimal("100000")),
            ACTOR,
        )
        deal_id = deal.id

        with pytest.raises(ConflictError) as exc:
            await lifecycle.update_brokerage_fields(
                deal_id,
                BrokerageUpdateRequest(brokerage_percent=Decimal("3")),
                ACTOR,
            )

        assert exc.value.code == "NOT_BROKERAGE_DEAL"
        assert exc.value.status_code == 409
        assert await _count(db_session, AuditLog) == 1

    async def test_paid_requires_details(self, lifecycle, db_session, brokerage_deal):
        deal_id = brokerage_deal.id

        with pytest.raises(ValidationError) as exc:
            await lifecycle.update_brokerage_fields(
                deal_id,
                BrokerageUpdateRequest(payout_status=PayoutStatus.PAID, invoice_no="INV-9"),
                ACTOR,
            )

        assert exc.value.code == "PAYOUT_DETAILS_REQUIRED"
        assert await _count(db_session, Deal) == 1
        assert await _count(db_session, AuditLog) == 1
        stored = await lifecycle.get_deal(deal_id)
        await db_session.refresh(stored)
        assert stored.payout_status == PayoutStatus.PENDING
        assert stored.invoice_no is None
        assert stored.brokerage_amount == Decimal("5000")
