"""
Append-only audit recorder.

Entries are written in the session of the mutation they describe, so they
commit or roll back together with it. The recorder rejects nothing on
business grounds; it fails only when storage fails. There is no update or
delete operation.
"""

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.errors import translate_db_error
from rea_deals.models import AuditAction, AuditLog
from rea_deals.utils.audit import log_action


class AuditRecorder:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        actor_id: str,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        before: Optional[dict[str, Any]] = None,
        after: Optional[dict[str, Any]] = None,
        origin_address: Optional[str] = None,
    ) -> AuditLog:
        entry = log_action(
            db=self.db,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            before=before,
            after=after,
            origin_address=origin_address,
        )
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        return entry

    async def list_for_entity(self, entity_type: str, entity_id: Any) -> list[AuditLog]:
        """Audit trail of one entity, oldest first."""
        try:
            result = await self.db.execute(
                select(AuditLog)
                .where(
                    AuditLog.entity_type == entity_type,
                    AuditLog.entity_id == str(entity_id),
                )
                .order_by(AuditLog.created_at)
            )
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        return list(result.scalars().all())
