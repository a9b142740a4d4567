"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import get_db
from src.models import CommissionConfig, CommissionConfigStatus, RankingTier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Returns 200 if the service is running."""
    return {"status": "healthy", "service": "propledger"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Ready once the database answers and the reference data exists.

    Without ranking tiers or an active commission config, ranking and
    lease commission requests would fail with configuration_missing.
    """
    try:
        tier_count = await db.scalar(select(func.count()).select_from(RankingTier))
        active_configs = await db.scalar(
            select(func.count())
            .select_from(CommissionConfig)
            .where(CommissionConfig.status == CommissionConfigStatus.ACTIVE)
        )
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check failed: {e}")
        return {"status": "not_ready", "database": "unavailable"}

    missing = []
    if not tier_count:
        missing.append("ranking_tiers")
    if not active_configs:
        missing.append("commission_config")

    return {
        "status": "not_ready" if missing else "ready",
        "database": "connected",
        "missing_reference_data": missing,
    }


@router.get("/live")
async def liveness_check():
    """Returns 200 if the process is alive."""
    return {"status": "alive"}
