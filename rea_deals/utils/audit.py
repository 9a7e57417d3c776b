"""
Audit logging utilities.

Every engine mutation is logged with before/after snapshots.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.models.audit import AuditAction, AuditLog


def to_json_safe(value: Any) -> Any:
    """Convert a column value into something the JSON column accepts."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    return str(value)


def snapshot(instance) -> dict[str, Any]:
    """
    Capture every mapped column of an ORM instance.

    Take it after flush so generated ids and timestamps are included.
    """
    mapper = sa_inspect(instance).mapper
    return {
        attr.key: to_json_safe(getattr(instance, attr.key))
        for attr in mapper.column_attrs
    }


def log_action(
    db: AsyncSession,
    actor_id: str,
    action: AuditAction,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    origin_address: Optional[str] = None,
) -> AuditLog:
    """
    Log an auditable action.

    Args:
        db: Database session of the transaction being audited
        actor_id: ID of the authenticated caller
        action: Type of action being performed
        entity_type: Table of the affected entity (e.g., "deals")
        entity_id: ID of the affected entity
        before: Snapshot before the change (None on create)
        after: Snapshot after the change
        origin_address: Client IP address

    Returns:
        Created AuditLog entry
    """
    log_entry = AuditLog(
        actor_id=str(actor_id),
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before=before,
        after=after,
        origin_address=origin_address,
    )
    db.add(log_entry)
    # Note: commit should happen in the calling context
    return log_entry


def get_client_ip(request) -> Optional[str]:
    """
    Extract client IP from request.

    Handles X-Forwarded-For header for reverse proxy setups.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the list is the client
        return forwarded_for.split(",")[0].strip()

    if hasattr(request, "client") and request.client:
        return request.client.host

    return None
