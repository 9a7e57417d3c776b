"""
Database models for the deal engine.

All models are exported here for convenient imports:
    from rea_deals.models import Deal, AuditLog, AvailabilityWindow, etc.
"""

from rea_deals.models.audit import AuditAction, AuditLog
from rea_deals.models.availability import AvailabilityLock, AvailabilityWindow, HolderType
from rea_deals.models.base import Base, TimestampMixin, utcnow
from rea_deals.models.deal import PAYOUT_ORDER, Deal, DealKind, DealType, PayoutStatus
from rea_deals.models.property import Expense, ListingType, Property, PropertyStatus

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "utcnow",
    # Deal
    "Deal",
    "DealKind",
    "DealType",
    "PayoutStatus",
    "PAYOUT_ORDER",
    # Availability
    "AvailabilityWindow",
    "AvailabilityLock",
    "HolderType",
    # Listings (read-only)
    "Property",
    "Expense",
    "ListingType",
    "PropertyStatus",
    # Audit
    "AuditLog",
    "AuditAction",
]
