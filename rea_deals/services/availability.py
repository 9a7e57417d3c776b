"""
Availability guard.

Keeps at most one occupancy commitment (deal or booking) per property for
any instant, and owns the property status transitions a commitment implies.

Check and reserve run in the caller's transaction:
1. lock the property's availability_locks row (FOR UPDATE + version bump)
2. look for a window overlapping [starts_at, ends_at)
3. insert the new window

Two reservers racing for one property serialize on step 1. Whichever loses
either sees the winner's window (Conflict) or is aborted by the store
(TransactionFailure). Nothing is retried here.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.errors import ConflictError, ValidationError, translate_db_error
from rea_deals.models import (
    AvailabilityLock,
    AvailabilityWindow,
    DealKind,
    HolderType,
    PropertyStatus,
)
from rea_deals.services.collaborators import PropertySnapshot

logger = logging.getLogger(__name__)

PROPERTY_TRANSITIONS: dict[PropertyStatus, set[PropertyStatus]] = {
    PropertyStatus.PENDING: {PropertyStatus.ACTIVE, PropertyStatus.ARCHIVED},
    PropertyStatus.ACTIVE: {
        PropertyStatus.PENDING,
        PropertyStatus.SOLD,
        PropertyStatus.RENTED,
        PropertyStatus.ARCHIVED,
    },
    PropertyStatus.RENTED: {PropertyStatus.ACTIVE, PropertyStatus.RENTED, PropertyStatus.ARCHIVED},
    PropertyStatus.SOLD: {PropertyStatus.ARCHIVED},
    PropertyStatus.ARCHIVED: set(),
}

# Statuses a booking may be placed against
BOOKABLE_STATUSES = {PropertyStatus.ACTIVE, PropertyStatus.RENTED}

# Property status a deal of each kind leads to; buying in changes nothing
COMMITMENT_STATUS = {
    DealKind.SELL: PropertyStatus.SOLD,
    DealKind.BROKERAGE: PropertyStatus.SOLD,
    DealKind.RENT: PropertyStatus.RENTED,
}


def assert_status_transition(current: PropertyStatus, target: PropertyStatus) -> None:
    """Raise ConflictError unless current -> target is a legal move."""
    if target not in PROPERTY_TRANSITIONS.get(current, set()):
        raise ConflictError(
            f"Property cannot move from {current.value} to {target.value}",
            code="INVALID_STATUS_TRANSITION",
        )


def status_after_commitment(kind: DealKind) -> Optional[PropertyStatus]:
    return COMMITMENT_STATUS.get(kind)


def as_utc(value: datetime) -> datetime:
    """Read a naive datetime as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def windows_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """Half-open interval intersection: [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class Reservation:
    """Outcome of a reserve call: the new window, or the one it collides with."""

    window: Optional[AvailabilityWindow] = None
    conflict: Optional[AvailabilityWindow] = None

    @property
    def ok(self) -> bool:
        return self.conflict is None


class AvailabilityGuard:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def reserve(
        self,
        property_id: uuid.UUID,
        starts_at: datetime,
        ends_at: datetime,
        holder_type: HolderType,
        holder_id: uuid.UUID,
        property: Optional[PropertySnapshot] = None,
        target_status: Optional[PropertyStatus] = None,
    ) -> Reservation:
        """
        Reserve [starts_at, ends_at) on a property.

        Returns a Reservation whose ``conflict`` is set when an existing
        window overlaps; that is a reported outcome, not an exception.
        """
        starts_at, ends_at = as_utc(starts_at), as_utc(ends_at)
        if starts_at >= ends_at:
            raise ValidationError(
                "Window start must be before its end",
                code="INVALID_WINDOW",
            )

        if property is not None and property.status:
            self._check_property_status(PropertyStatus(property.status), holder_type, target_status)

        await self._lock_property(property_id)

        try:
            conflict = await self.db.scalar(
                select(AvailabilityWindow)
                .where(
                    AvailabilityWindow.property_id == property_id,
                    AvailabilityWindow.starts_at < ends_at,
                    AvailabilityWindow.ends_at > starts_at,
                )
                .order_by(AvailabilityWindow.starts_at)
                .limit(1)
            )
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e

        if conflict is not None:
            logger.warning(
                f"Availability conflict on property {property_id}: "
                f"requested {starts_at}..{ends_at}, held by {conflict.holder_id}"
            )
            return Reservation(conflict=conflict)

        window = AvailabilityWindow(
            property_id=property_id,
            starts_at=starts_at,
            ends_at=ends_at,
            holder_type=holder_type,
            holder_id=holder_id,
        )
        self.db.add(window)
        await self._flush()

        logger.info(f"Reserved property {property_id} {starts_at}..{ends_at} for {holder_type.value} {holder_id}")
        return Reservation(window=window)

    async def release(self, property_id: uuid.UUID, holder_id: uuid.UUID) -> list[AvailabilityWindow]:
        """
        Remove the holder's windows on a property.

        Idempotent: releasing a window that does not exist is a no-op and
        returns an empty list.
        """
        try:
            result = await self.db.execute(
                select(AvailabilityWindow).where(
                    AvailabilityWindow.property_id == property_id,
                    AvailabilityWindow.holder_id == holder_id,
                )
            )
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        windows = list(result.scalars().all())

        for window in windows:
            await self.db.delete(window)

        if windows:
            await self._flush()
            logger.info(f"Released {len(windows)} window(s) on property {property_id} held by {holder_id}")

        return windows

    async def windows(self, property_id: uuid.UUID) -> list[AvailabilityWindow]:
        try:
            result = await self.db.execute(
                select(AvailabilityWindow)
                .where(AvailabilityWindow.property_id == property_id)
                .order_by(AvailabilityWindow.starts_at)
            )
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        return list(result.scalars().all())

    def _check_property_status(
        self,
        current: PropertyStatus,
        holder_type: HolderType,
        target_status: Optional[PropertyStatus],
    ) -> None:
        if target_status is not None:
            assert_status_transition(current, target_status)
        elif holder_type == HolderType.BOOKING and current not in BOOKABLE_STATUSES:
            raise ConflictError(
                f"Property is {current.value} and cannot be booked",
                code="PROPERTY_NOT_AVAILABLE",
            )

    async def _lock_property(self, property_id: uuid.UUID) -> None:
        try:
            lock = await self.db.scalar(
                select(AvailabilityLock)
                .where(AvailabilityLock.property_id == property_id)
                .with_for_update()
            )
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e

        if lock is None:
            self.db.add(AvailabilityLock(property_id=property_id, version=0))
        else:
            # Forces a write on stores without row locks (SQLite)
            lock.version += 1

        await self._flush()

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
