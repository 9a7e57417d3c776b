"""Deals API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Request, status

from rea_deals.api.dependencies import get_lifecycle
from rea_deals.auth.dependencies import Actor, get_current_actor
from rea_deals.schemas import (
    AuditLogResponse,
    BrokerageUpdateRequest,
    CommissionSummaryFilters,
    DealCreateRequest,
    DealResponse,
    DealUpdateRequest,
    success_response,
)
from rea_deals.services.deal_lifecycle import DealLifecycleManager
from rea_deals.utils.audit import get_client_ip

router = APIRouter(prefix="/deals", tags=["Deals"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deal(
    request: Request,
    data: DealCreateRequest,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Create a deal with commission calculations."""
    deal = await lifecycle.create_deal(data, actor.id, get_client_ip(request))
    return success_response(
        {"deal": DealResponse.model_validate(deal)},
        "Deal created successfully with commission calculations",
    )


# Must stay above /{deal_id} so "commission-summary" is not parsed as an id
@router.get("/commission-summary")
async def get_commission_summary(
    filters: CommissionSummaryFilters = Depends(),
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Commission totals over closed deals."""
    summary = await lifecycle.summarize(filters)
    return success_response(
        {"commission_summary": summary},
        "Commission summary retrieved successfully",
    )


@router.get("/{deal_id}")
async def get_deal(
    deal_id: uuid.UUID,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Get full deal details."""
    deal = await lifecycle.get_deal(deal_id)
    return success_response({"deal": DealResponse.model_validate(deal)})


@router.get("/{deal_id}/audit")
async def get_deal_audit(
    deal_id: uuid.UUID,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Audit trail of a deal, oldest first."""
    entries = await lifecycle.get_audit_trail(deal_id)
    return success_response(
        {"entries": [AuditLogResponse.model_validate(e) for e in entries]}
    )


@router.patch("/{deal_id}")
async def update_deal(
    request: Request,
    deal_id: uuid.UUID,
    data: DealUpdateRequest,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Update a deal, recalculating brokerage commission when needed."""
    deal = await lifecycle.update_deal(deal_id, data, actor.id, get_client_ip(request))
    return success_response(
        {"deal": DealResponse.model_validate(deal)},
        "Deal updated successfully",
    )


@router.patch("/{deal_id}/brokerage")
async def update_brokerage_fields(
    request: Request,
    deal_id: uuid.UUID,
    data: BrokerageUpdateRequest,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Update brokerage and payout fields of a brokerage deal."""
    deal = await lifecycle.update_brokerage_fields(deal_id, data, actor.id, get_client_ip(request))
    return success_response(
        {"deal": DealResponse.model_validate(deal)},
        "Brokerage deal updated successfully",
    )
