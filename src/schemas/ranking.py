"""Ranking tier schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class TierCreate(BaseModel):
    """Create a ranking tier."""

    name: str = Field(..., min_length=1, max_length=50)
    minimum_earnings: Decimal = Field(..., ge=0)
    bonus: Decimal = Field(..., ge=0, le=100)
    color: Optional[str] = Field(None, max_length=50)


class TierUpdate(BaseModel):
    """Update a ranking tier; omitted fields are unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    minimum_earnings: Optional[Decimal] = Field(None, ge=0)
    bonus: Optional[Decimal] = Field(None, ge=0, le=100)
    color: Optional[str] = Field(None, max_length=50)


class TierReorder(BaseModel):
    """New display order; the first id gets order 1."""

    tier_ids: List[int] = Field(..., min_length=1)


class TierResponse(BaseModel):
    """Ranking tier."""

    id: int
    name: str
    minimum_earnings: Decimal
    bonus: Decimal
    color: str
    order: int

    model_config = {"from_attributes": True}


class TierSummary(BaseModel):
    """Tier as shown next to an agent's ranking."""

    name: str
    minimum_earnings: Decimal
    bonus: Decimal
    color: str
    is_current_tier: bool = False

    @classmethod
    def from_tier(cls, tier, current=None) -> "TierSummary":
        return cls(
            name=tier.name,
            minimum_earnings=tier.minimum_earnings,
            bonus=tier.bonus,
            color=tier.color,
            is_current_tier=current is not None and tier.id == current.id,
        )


class AgentRankingResponse(BaseModel):
    """One agent's position on the ranking board."""

    agent_id: int
    first_name: str
    last_name: str
    business_name: Optional[str] = None
    total_earnings: Decimal
    current_tier: str
    current_tier_color: str
    bonus: Decimal
    total_bonus: Decimal
    progress_to_next_tier: Decimal
    next_tier_name: Optional[str] = None
    next_tier_earnings_required: Optional[Decimal] = None

    @classmethod
    def from_ranking(cls, ranking) -> "AgentRankingResponse":
        """Build from a services.ranking.AgentRanking."""
        agent = ranking.agent
        upcoming = ranking.next_tier
        return cls(
            agent_id=agent.id,
            first_name=agent.first_name,
            last_name=agent.last_name,
            business_name=agent.business_name,
            total_earnings=ranking.total_earned,
            current_tier=ranking.current_tier.name,
            current_tier_color=ranking.current_tier.color,
            bonus=ranking.current_tier.bonus,
            total_bonus=ranking.total_bonus,
            progress_to_next_tier=ranking.progress_to_next_tier,
            next_tier_name=upcoming.name if upcoming else None,
            next_tier_earnings_required=(
                max(Decimal("0"), upcoming.minimum_earnings - ranking.total_earned)
                if upcoming else None
            ),
        )


class MyRankingResponse(BaseModel):
    """The calling agent's ranking with every tier for context."""

    current_tier: TierSummary
    total_earnings: Decimal
    total_bonus: Decimal
    progress_to_next_tier: Decimal
    next_tier: Optional[TierSummary] = None
    all_tiers: List[TierSummary]

    @classmethod
    def from_ranking(cls, ranking, tiers) -> "MyRankingResponse":
        current = ranking.current_tier
        return cls(
            current_tier=TierSummary.from_tier(current, current),
            total_earnings=ranking.total_earned,
            total_bonus=ranking.total_bonus,
            progress_to_next_tier=ranking.progress_to_next_tier,
            next_tier=TierSummary.from_tier(ranking.next_tier) if ranking.next_tier else None,
            all_tiers=[TierSummary.from_tier(t, current) for t in tiers],
        )


class TierStatistics(BaseModel):
    """Active agents at or above a tier and their bonus at its rate."""

    tier: str
    agent_count: int
    total_bonus: Decimal
