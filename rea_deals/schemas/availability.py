"""Availability window schemas."""

import uuid
from datetime import datetime

from pydantic import AwareDatetime, BaseModel, ConfigDict

from rea_deals.models.availability import HolderType


class ReservationRequest(BaseModel):
    """Reserve [starts_at, ends_at) on a property for a deal or booking."""

    model_config = ConfigDict(extra="forbid")

    starts_at: AwareDatetime
    ends_at: AwareDatetime
    holder_type: HolderType = HolderType.BOOKING
    holder_id: uuid.UUID


class AvailabilityWindowResponse(BaseModel):
    """A reserved window."""

    id: uuid.UUID
    property_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    holder_type: HolderType
    holder_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}
