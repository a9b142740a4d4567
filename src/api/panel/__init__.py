"""Panel API router aggregation."""

from fastapi import APIRouter

from src.api.panel.ranking import router as ranking_router
from src.api.panel.referrals import router as referrals_router
from src.api.panel.withdrawals import router as withdrawals_router

panel_router = APIRouter(prefix="/panel", tags=["Panel"])

panel_router.include_router(ranking_router)
panel_router.include_router(withdrawals_router)
panel_router.include_router(referrals_router)

__all__ = ["panel_router"]
