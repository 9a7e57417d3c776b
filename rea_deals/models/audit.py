"""
AuditLog model for tracking every mutation made by the deal engine.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, String, Uuid, event
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from rea_deals.models.base import Base, utcnow


class AuditAction(str, Enum):
    """Types of auditable actions."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    UPDATE_BROKERAGE = "UPDATE_BROKERAGE"
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"


class AuditLog(Base):
    """
    Append-only record of a state-changing operation.

    Written in the same transaction as the change it describes.
    Rows are never updated or deleted.
    """

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    actor_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    action: Mapped[AuditAction] = mapped_column(
        SQLAlchemyEnum(
            AuditAction,
            name="auditaction",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Table of the affected entity (deals, availability_windows)",
    )
    entity_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    before: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Snapshot before the change, NULL on create",
    )
    after: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Snapshot after the change",
    )
    origin_address: Mapped[Optional[str]] = mapped_column(
        String(45),
        nullable=True,
        comment="IPv4 or IPv6 address",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, actor_id={self.actor_id}, action={self.action})>"


@event.listens_for(AuditLog, "before_update")
def _refuse_audit_update(mapper, connection, target):
    raise PermissionError("Audit log entries are immutable")


@event.listens_for(AuditLog, "before_delete")
def _refuse_audit_delete(mapper, connection, target):
    raise PermissionError("Audit log entries cannot be deleted")
