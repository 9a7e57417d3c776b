"""API router aggregation."""

from fastapi import APIRouter

from rea_deals.api.availability import router as availability_router
from rea_deals.api.deals import router as deals_router
from rea_deals.api.health import router as health_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(deals_router)
api_router.include_router(availability_router)

__all__ = ["api_router"]
