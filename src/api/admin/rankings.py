"""Admin ranking tier API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import require_admin
from src.db import get_db
from src.models import Admin, AuditAction
from src.schemas.ranking import (
    AgentRankingResponse,
    TierCreate,
    TierReorder,
    TierResponse,
    TierStatistics,
    TierUpdate,
)
from src.services import ranking as ranking_service
from src.utils.audit import get_client_ip, log_action

router = APIRouter(prefix="/rankings")


@router.get("/tiers", response_model=List[TierResponse])
async def list_tiers(
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """List ranking tiers in display order."""
    return await ranking_service.list_tiers(db)


@router.post("/tiers", response_model=TierResponse, status_code=201)
async def create_tier(
    data: TierCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Create a ranking tier."""
    tier = await ranking_service.create_tier(
        db,
        name=data.name,
        minimum_earnings=data.minimum_earnings,
        bonus=data.bonus,
        color=data.color,
    )

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.CREATE_TIER,
        target_type="tier",
        target_id=tier.id,
        action_metadata={"name": tier.name, "minimum_earnings": str(tier.minimum_earnings)},
        ip_address=get_client_ip(request),
    )

    return tier


@router.post("/tiers/reorder", response_model=List[TierResponse])
async def reorder_tiers(
    data: TierReorder,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Set the display order of all tiers."""
    tiers = await ranking_service.reorder_tiers(db, data.tier_ids)

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.REORDER_TIERS,
        target_type="tier",
        action_metadata={"tier_ids": data.tier_ids},
        ip_address=get_client_ip(request),
    )

    return tiers


@router.put("/tiers/{tier_id}", response_model=TierResponse)
async def update_tier(
    tier_id: int,
    data: TierUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Update a ranking tier."""
    changes = data.model_dump(exclude_unset=True)
    tier = await ranking_service.update_tier(db, tier_id, **changes)

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.UPDATE_TIER,
        target_type="tier",
        target_id=tier_id,
        action_metadata={k: str(v) for k, v in changes.items()},
        ip_address=get_client_ip(request),
    )

    return tier


@router.delete("/tiers/{tier_id}", response_model=List[TierResponse])
async def delete_tier(
    tier_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Delete an unused tier. Returns the remaining tiers, renumbered."""
    remaining = await ranking_service.delete_tier(db, tier_id)

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.DELETE_TIER,
        target_type="tier",
        target_id=tier_id,
        ip_address=get_client_ip(request),
    )

    return remaining


@router.get("/agents", response_model=List[AgentRankingResponse])
async def list_agent_rankings(
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """All active agents with their tier, highest earnings first."""
    rankings = await ranking_service.agent_rankings(db)
    return [AgentRankingResponse.from_ranking(r) for r in rankings]


@router.get("/statistics", response_model=List[TierStatistics])
async def get_ranking_statistics(
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Agent count and bonus total per tier."""
    return await ranking_service.ranking_statistics(db)
