"""
REA Deals - Deal & Commission Engine

FastAPI application exposing:
- Deal creation and updates with commission calculation
- Commission summary reporting
- Property availability windows for the bookings subsystem

Every response uses the {success, data, message} / {success, error}
envelope.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rea_deals.api import api_router
from rea_deals.config import settings
from rea_deals.db import engine
from rea_deals.errors import DealEngineError, StorageFailure
from rea_deals.schemas.common import error_response

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Shutdown disposes the database engine.
    """
    logger.info("Starting REA Deals...")

    yield

    logger.info("Shutting down REA Deals...")
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="REA Deals",
    description="Deal & Commission Engine",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)


@app.exception_handler(DealEngineError)
async def deal_engine_error_handler(request: Request, exc: DealEngineError):
    if isinstance(exc, StorageFailure):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    details = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg"),
        }
        for err in errors
    ]
    return JSONResponse(
        status_code=400,
        content=error_response("VALIDATION_ERROR", message, details),
    )


# Include routers
app.include_router(api_router)  # /api/* endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rea_deals.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
