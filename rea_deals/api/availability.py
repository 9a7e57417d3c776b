"""Property availability API endpoints (used by the bookings subsystem)."""

import uuid

from fastapi import APIRouter, Depends, Request, status

from rea_deals.api.dependencies import get_lifecycle
from rea_deals.auth.dependencies import Actor, get_current_actor
from rea_deals.schemas import AvailabilityWindowResponse, ReservationRequest, success_response
from rea_deals.services.deal_lifecycle import DealLifecycleManager
from rea_deals.utils.audit import get_client_ip

router = APIRouter(prefix="/properties/{property_id}/availability", tags=["Availability"])


@router.get("")
async def list_windows(
    property_id: uuid.UUID,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Reserved windows of a property, earliest first."""
    windows = await lifecycle.list_windows(property_id)
    return success_response(
        {"windows": [AvailabilityWindowResponse.model_validate(w) for w in windows]}
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def reserve_window(
    request: Request,
    property_id: uuid.UUID,
    data: ReservationRequest,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Reserve a window. Overlaps are answered with 409 AVAILABILITY_CONFLICT."""
    window = await lifecycle.reserve_window(property_id, data, actor.id, get_client_ip(request))
    return success_response(
        {"window": AvailabilityWindowResponse.model_validate(window)},
        "Window reserved",
    )


@router.delete("/{holder_id}")
async def release_window(
    request: Request,
    property_id: uuid.UUID,
    holder_id: uuid.UUID,
    lifecycle: DealLifecycleManager = Depends(get_lifecycle),
    actor: Actor = Depends(get_current_actor),
):
    """Release a holder's windows. Releasing nothing is not an error."""
    released = await lifecycle.release_window(property_id, holder_id, actor.id, get_client_ip(request))
    return success_response(
        {"released": released},
        "Window released" if released else "Nothing to release",
    )
