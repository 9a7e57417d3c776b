"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rea_deals.db import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check.

    Returns 200 if the service is running.
    """
    return {"status": "healthy", "service": "rea-deals"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness check with database connectivity.

    Reports not_ready instead of failing so probes can read the reason.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check failed: {e}")
        return {
            "status": "not_ready",
            "database": f"error: {e.__class__.__name__}",
        }

    return {
        "status": "ready",
        "database": "connected",
    }


@router.get("/live")
async def liveness_check():
    """
    Liveness check.

    Returns 200 if the service is alive.
    """
    return {"status": "alive"}
