"""Business logic services."""

from rea_deals.services.audit_recorder import AuditRecorder
from rea_deals.services.availability import AvailabilityGuard, Reservation
from rea_deals.services.deal_lifecycle import DealLifecycleManager
from rea_deals.services.deal_repository import DealRepository

__all__ = [
    "AuditRecorder",
    "AvailabilityGuard",
    "DealLifecycleManager",
    "DealRepository",
    "Reservation",
]
