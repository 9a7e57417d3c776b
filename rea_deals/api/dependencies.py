"""Shared endpoint dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.db import get_db
from rea_deals.services.deal_lifecycle import DealLifecycleManager


async def get_lifecycle(db: AsyncSession = Depends(get_db)) -> DealLifecycleManager:
    """Deal lifecycle manager bound to the request's session."""
    return DealLifecycleManager(db)
