"""Agent panel ranking API endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import require_agent
from src.db import get_db
from src.models import ActorRef
from src.schemas.ranking import AgentRankingResponse, MyRankingResponse
from src.services import ranking as ranking_service

router = APIRouter(prefix="/ranking")


@router.get("/me", response_model=MyRankingResponse)
async def get_my_ranking(
    db: AsyncSession = Depends(get_db),
    agent: ActorRef = Depends(require_agent),
):
    """Current tier, progress and all tiers for the calling agent."""
    ranking, tiers = await ranking_service.get_agent_ranking(db, agent.id)
    return MyRankingResponse.from_ranking(ranking, tiers)


@router.get("/leaderboard", response_model=List[AgentRankingResponse])
async def get_leaderboard(
    db: AsyncSession = Depends(get_db),
    agent: ActorRef = Depends(require_agent),
):
    """Top agents by lifetime earnings."""
    rankings = await ranking_service.leaderboard(db)
    return [AgentRankingResponse.from_ranking(r) for r in rankings]
