"""Admin API router aggregation."""

from fastapi import APIRouter

from src.api.admin.commission import router as commission_router
from src.api.admin.rankings import router as rankings_router
from src.api.admin.withdrawals import router as withdrawals_router

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(rankings_router)
admin_router.include_router(withdrawals_router)
admin_router.include_router(commission_router)

__all__ = ["admin_router"]
