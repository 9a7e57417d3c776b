"""
Pydantic schemas for request/response validation.
"""

from rea_deals.schemas.availability import AvailabilityWindowResponse, ReservationRequest
from rea_deals.schemas.common import error_response, success_response
from rea_deals.schemas.deal import (
    AuditLogResponse,
    BrokerageUpdateRequest,
    CommissionSummary,
    CommissionSummaryFilters,
    DealCreateRequest,
    DealResponse,
    DealUpdateRequest,
)

__all__ = [
    # Envelope
    "success_response",
    "error_response",
    # Deal
    "DealCreateRequest",
    "DealUpdateRequest",
    "BrokerageUpdateRequest",
    "DealResponse",
    "CommissionSummary",
    "CommissionSummaryFilters",
    "AuditLogResponse",
    # Availability
    "ReservationRequest",
    "AvailabilityWindowResponse",
]
