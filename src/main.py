"""
PropLedger - Referral Commission Ledger

Main FastAPI application with:
- Tiered commission calculation
- Referral tracking and commission crediting
- Agent ranking tiers
- Withdrawal requests and admin approval
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from src.api import api_router
from src.auth.middleware import AuthMiddleware
from src.config import settings
from src.db import get_db_context
from src.services.commission import seed_default_commission_config
from src.services.errors import LedgerError, StorageError
from src.services.ranking import seed_default_tiers

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

    Startup:
    - Seeds default ranking tiers and commission config if missing

    Shutdown:
    - Cleanup tasks
    """
    logger.info("Starting PropLedger...")

    if settings.seed_reference_data:
        async with get_db_context() as db:
            await seed_default_tiers(db)
            await seed_default_commission_config(db)

    logger.info("PropLedger started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down PropLedger...")


# Create FastAPI application
app = FastAPI(
    title="PropLedger",
    description="Referral commission ledger for property management",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# Add authentication middleware
app.add_middleware(AuthMiddleware)

# Include routers
app.include_router(api_router)  # /api/* endpoints


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Domain errors become JSON with their status code and current state."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    """Database failures outside a ledger operation (e.g. the request commit)."""
    logger.error(f"{request.method} {request.url.path} database error: {exc}")
    error = StorageError("Database error")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Root redirect
@app.get("/", include_in_schema=False)
async def root():
    """Redirect root to the health endpoint."""
    return RedirectResponse(url="/api/health", status_code=302)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
