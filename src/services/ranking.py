"""
Ranking engine: classify agents into earnings tiers.

Tiers are resolved against lifetime earnings (commission_total_earned).
Everyone has a tier: agents below the lowest threshold fall into it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.models import ActorStatus, Agent, RankingTier
from src.services.errors import (
    ConfigurationMissing,
    ConflictError,
    TierInUse,
    TierNotFound,
    ValidationError,
)
from src.services.ledger import atomic, require_agent

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

# Seeded when the tier table is empty
DEFAULT_RANKING_TIERS = [
    {"name": "Diamond", "minimum_earnings": Decimal("10000000"), "bonus": Decimal("15")},
    {"name": "Platinum", "minimum_earnings": Decimal("5000000"), "bonus": Decimal("10")},
    {"name": "Gold", "minimum_earnings": Decimal("2000000"), "bonus": Decimal("7.5")},
    {"name": "Silver", "minimum_earnings": Decimal("1000000"), "bonus": Decimal("5")},
    {"name": "Bronze", "minimum_earnings": Decimal("500000"), "bonus": Decimal("2.5")},
]


class TierLike(Protocol):
    name: str
    minimum_earnings: Decimal
    bonus: Decimal
    order: int


# ── Pure tier arithmetic ──────────────────────────────────


def sort_tiers(tiers: Sequence[TierLike]) -> list[TierLike]:
    """Highest threshold first; equal thresholds keep display order."""
    return sorted(tiers, key=lambda t: (-Decimal(t.minimum_earnings), t.order))


def resolve_tier(total_earned: Decimal, tiers: Sequence[TierLike]) -> TierLike:
    """
    Current tier for an earnings total.

    The first tier (highest threshold first) whose minimum_earnings is at or
    below total_earned; if none qualifies, the lowest tier.
    """
    if not tiers:
        raise ConfigurationMissing("No ranking tiers configured")

    ordered = sort_tiers(tiers)
    for tier in ordered:
        if tier.minimum_earnings <= total_earned:
            return tier
    return ordered[-1]


def _same_tier(a: TierLike, b: TierLike) -> bool:
    """Persisted tiers match by id; plain values by name, threshold and order."""
    if a is b:
        return True
    a_id = getattr(a, "id", None)
    b_id = getattr(b, "id", None)
    if a_id is not None and b_id is not None:
        return a_id == b_id
    return (a.name, Decimal(a.minimum_earnings), a.order) == (
        b.name,
        Decimal(b.minimum_earnings),
        b.order,
    )


def next_tier(current: TierLike, tiers: Sequence[TierLike]) -> Optional[TierLike]:
    """
    Tier immediately above `current`, or None at the top.

    Raises:
        TierNotFound: `current` is not one of `tiers`
    """
    ordered = sort_tiers(tiers)
    index = next((i for i, t in enumerate(ordered) if _same_tier(t, current)), None)
    if index is None:
        raise TierNotFound(f"Tier '{current.name}' is not among the configured tiers")
    if index == 0:
        return None
    return ordered[index - 1]


def progress_to_next_tier(
    total_earned: Decimal,
    current: TierLike,
    tiers: Sequence[TierLike],
) -> Decimal:
    """
    Percentage of the way from the current tier's threshold to the next one.

    100 at the top tier or when both thresholds are equal; clamped to 0..100.
    """
    upcoming = next_tier(current, tiers)
    if upcoming is None:
        return HUNDRED

    span = upcoming.minimum_earnings - current.minimum_earnings
    if span <= 0:
        return HUNDRED

    progress = (total_earned - current.minimum_earnings) / span * HUNDRED
    return max(Decimal("0"), min(HUNDRED, progress))


def total_bonus(total_earned: Decimal, tier: TierLike) -> Decimal:
    return total_earned * tier.bonus / HUNDRED


@dataclass
class AgentRanking:
    """Ranking of one agent."""

    agent: Agent
    current_tier: RankingTier
    total_earned: Decimal
    progress_to_next_tier: Decimal
    total_bonus: Decimal
    next_tier: Optional[RankingTier]


def rank_agent(agent: Agent, tiers: Sequence[RankingTier]) -> AgentRanking:
    earned = agent.commission_total_earned
    current = resolve_tier(earned, tiers)
    return AgentRanking(
        agent=agent,
        current_tier=current,
        total_earned=earned,
        progress_to_next_tier=progress_to_next_tier(earned, current, tiers),
        total_bonus=total_bonus(earned, current),
        next_tier=next_tier(current, tiers),
    )


# ── Tier management ───────────────────────────────────────


async def list_tiers(db: AsyncSession) -> list[RankingTier]:
    """All tiers in display order."""
    result = await db.execute(
        select(RankingTier).order_by(RankingTier.order, RankingTier.id)
    )
    return list(result.scalars().all())


async def _require_tier(db: AsyncSession, tier_id: int) -> RankingTier:
    tier = await db.scalar(
        select(RankingTier).where(RankingTier.id == tier_id).with_for_update()
    )
    if tier is None:
        raise TierNotFound(f"Tier {tier_id} not found")
    return tier


async def _renumber_by_earnings(db: AsyncSession) -> list[RankingTier]:
    """Reassign order 1..N, highest threshold first."""
    result = await db.execute(select(RankingTier).with_for_update())
    tiers = sort_tiers(list(result.scalars().all()))
    for position, tier in enumerate(tiers, start=1):
        tier.order = position
    return tiers


def _validate_tier_values(minimum_earnings: Decimal, bonus: Decimal) -> None:
    if minimum_earnings < 0:
        raise ValidationError("minimum_earnings must not be negative")
    if not Decimal("0") <= bonus <= HUNDRED:
        raise ValidationError("bonus must be between 0 and 100")


async def _flush_unique_name(db: AsyncSession, name: str) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        raise ConflictError(f"Tier '{name}' already exists") from e


async def create_tier(
    db: AsyncSession,
    name: str,
    minimum_earnings: Decimal,
    bonus: Decimal,
    color: Optional[str] = None,
) -> RankingTier:
    """Add a tier; display order is renumbered by threshold."""
    _validate_tier_values(minimum_earnings, bonus)

    async with atomic(db):
        tier = RankingTier(
            name=name.strip(),
            minimum_earnings=minimum_earnings,
            bonus=bonus,
            color=color or "bg-gray-500",
            order=0,
        )
        db.add(tier)
        await _flush_unique_name(db, tier.name)
        await _renumber_by_earnings(db)

    logger.info(f"Ranking tier '{tier.name}' created (min={minimum_earnings}, bonus={bonus}%)")
    return tier


async def update_tier(
    db: AsyncSession,
    tier_id: int,
    name: Optional[str] = None,
    minimum_earnings: Optional[Decimal] = None,
    bonus: Optional[Decimal] = None,
    color: Optional[str] = None,
) -> RankingTier:
    """Update tier fields; omitted fields are left alone. A new threshold renumbers display order."""
    async with atomic(db):
        tier = await _require_tier(db, tier_id)
        _validate_tier_values(
            minimum_earnings if minimum_earnings is not None else tier.minimum_earnings,
            bonus if bonus is not None else tier.bonus,
        )
        if name is not None:
            tier.name = name.strip()
        if minimum_earnings is not None:
            tier.minimum_earnings = minimum_earnings
        if bonus is not None:
            tier.bonus = bonus
        if color is not None:
            tier.color = color
        await _flush_unique_name(db, tier.name)
        if minimum_earnings is not None:
            await _renumber_by_earnings(db)

    logger.info(f"Ranking tier {tier_id} updated")
    return tier


async def count_agents_at_or_above(db: AsyncSession, minimum_earnings: Decimal) -> int:
    return await db.scalar(
        select(func.count())
        .select_from(Agent)
        .where(
            Agent.status == ActorStatus.ACTIVE,
            Agent.commission_total_earned >= minimum_earnings,
        )
    ) or 0


async def delete_tier(db: AsyncSession, tier_id: int) -> list[RankingTier]:
    """
    Delete an unused tier and renumber the rest densely.

    Raises:
        TierNotFound: no such tier
        TierInUse: an active agent has earnings at or above the threshold
    """
    async with atomic(db):
        tier = await _require_tier(db, tier_id)
        agents_in_tier = await count_agents_at_or_above(db, tier.minimum_earnings)
        if agents_in_tier > 0:
            raise TierInUse(
                f"Cannot delete tier '{tier.name}' with active agents",
                current_state={"tier": tier.name, "agent_count": agents_in_tier},
            )
        await db.delete(tier)
        await db.flush()
        remaining = await _renumber_by_earnings(db)

    logger.info(f"Ranking tier '{tier.name}' deleted, {len(remaining)} tiers renumbered")
    return remaining


async def reorder_tiers(db: AsyncSession, tier_ids: Sequence[int]) -> list[RankingTier]:
    """
    Set the display order explicitly: tier_ids[0] gets order 1, and so on.

    Every tier must be listed exactly once.
    """
    async with atomic(db):
        result = await db.execute(select(RankingTier).with_for_update())
        tiers = {t.id: t for t in result.scalars().all()}

        if len(set(tier_ids)) != len(tier_ids):
            raise ValidationError("Tier ids must be unique")
        missing = [tid for tid in tier_ids if tid not in tiers]
        if missing:
            raise TierNotFound(f"Tiers not found: {missing}")
        if set(tier_ids) != set(tiers):
            raise ValidationError("Every tier must be included in the new order")

        for position, tier_id in enumerate(tier_ids, start=1):
            tiers[tier_id].order = position

    return [tiers[tid] for tid in tier_ids]


async def seed_default_tiers(db: AsyncSession) -> list[RankingTier]:
    """Create the default tiers if the table is empty."""
    existing = await db.scalar(select(func.count()).select_from(RankingTier))
    if existing:
        return []

    async with atomic(db):
        tiers = [
            RankingTier(order=position, **values)
            for position, values in enumerate(DEFAULT_RANKING_TIERS, start=1)
        ]
        db.add_all(tiers)

    logger.info(f"Seeded {len(tiers)} default ranking tiers")
    return tiers


# ── Agent rankings ────────────────────────────────────────


async def _tiers_by_threshold(db: AsyncSession) -> list[RankingTier]:
    tiers = await list_tiers(db)
    if not tiers:
        raise ConfigurationMissing("No ranking tiers found")
    return sort_tiers(tiers)


async def get_agent_ranking(db: AsyncSession, agent_id: int) -> tuple[AgentRanking, list[RankingTier]]:
    """Ranking of one agent plus all tiers (highest first) for display."""
    agent = await require_agent(db, agent_id)
    tiers = await _tiers_by_threshold(db)
    return rank_agent(agent, tiers), tiers


async def agent_rankings(db: AsyncSession) -> list[AgentRanking]:
    """Every active agent ranked, highest earnings first."""
    tiers = await _tiers_by_threshold(db)
    result = await db.execute(
        select(Agent)
        .where(Agent.status == ActorStatus.ACTIVE)
        .order_by(Agent.commission_total_earned.desc(), Agent.id)
        .execution_options(populate_existing=True)
    )
    return [rank_agent(agent, tiers) for agent in result.scalars().all()]


async def leaderboard(db: AsyncSession, limit: Optional[int] = None) -> list[AgentRanking]:
    """Top active agents by lifetime earnings."""
    tiers = await _tiers_by_threshold(db)
    result = await db.execute(
        select(Agent)
        .where(Agent.status == ActorStatus.ACTIVE)
        .order_by(Agent.commission_total_earned.desc(), Agent.id)
        .execution_options(populate_existing=True)
        .limit(limit or settings.leaderboard_size)
    )
    return [rank_agent(agent, tiers) for agent in result.scalars().all()]


async def ranking_statistics(db: AsyncSession) -> list[dict]:
    """
    Per tier: active agents at or above the threshold and the bonus
    those agents would earn at this tier's rate.
    """
    tiers = await _tiers_by_threshold(db)
    stats = []
    for tier in tiers:
        row = (await db.execute(
            select(
                func.count().label("agent_count"),
                func.coalesce(func.sum(Agent.commission_total_earned), Decimal("0")).label("earned"),
            )
            .select_from(Agent)
            .where(
                Agent.status == ActorStatus.ACTIVE,
                Agent.commission_total_earned >= tier.minimum_earnings,
            )
        )).one()
        stats.append({
            "tier": tier.name,
            "agent_count": row.agent_count,
            "total_bonus": Decimal(str(row.earned)) * tier.bonus / HUNDRED,
        })
    return stats
