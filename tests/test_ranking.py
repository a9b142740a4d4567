"""
Tests for the ranking engine.

Covers:
- Tier resolution and progress arithmetic (pure functions)
- Tier management: create, update, delete, reorder, seed
- Agent rankings, leaderboard and statistics
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from src.models import ActorStatus, RankingTier
from src.services.errors import (
    ConfigurationMissing,
    ConflictError,
    TierInUse,
    TierNotFound,
    ValidationError,
)
from src.services.ranking import (
    DEFAULT_RANKING_TIERS,
    create_tier,
    delete_tier,
    get_agent_ranking,
    leaderboard,
    list_tiers,
    next_tier,
    progress_to_next_tier,
    rank_agent,
    ranking_statistics,
    reorder_tiers,
    resolve_tier,
    seed_default_tiers,
    total_bonus,
    update_tier,
)
from src.services.referrals import add_transaction


@dataclass
class Tier:
    name: str
    minimum_earnings: Decimal
    bonus: Decimal
    order: int = 0


BRONZE = Tier("Bronze", Decimal("500000"), Decimal("2.5"), 2)
SILVER = Tier("Silver", Decimal("1000000"), Decimal("5"), 1)
TIERS = [BRONZE, SILVER]


# ── Pure tier arithmetic ──────────────────────────────────


class TestResolveTier:
    def test_bronze_halfway_to_silver(self):
        """750000 earned: Bronze, 50% of the way to Silver."""
        tier = resolve_tier(Decimal("750000"), TIERS)
        assert tier is BRONZE
        assert progress_to_next_tier(Decimal("750000"), tier, TIERS) == Decimal("50")

    def test_threshold_is_inclusive(self):
        assert resolve_tier(Decimal("1000000"), TIERS) is SILVER
        assert resolve_tier(Decimal("999999.99"), TIERS) is BRONZE

    def test_below_lowest_tier_falls_into_lowest(self):
        tier = resolve_tier(Decimal("1000"), TIERS)
        assert tier is BRONZE
        assert progress_to_next_tier(Decimal("1000"), tier, TIERS) == Decimal("0")

    def test_input_order_does_not_matter(self):
        assert resolve_tier(Decimal("2000000"), [SILVER, BRONZE]) is SILVER

    def test_monotonic_in_earnings(self):
        tiers = [Tier(t["name"], t["minimum_earnings"], t["bonus"], i) for i, t in enumerate(DEFAULT_RANKING_TIERS)]
        thresholds = []
        for earned in range(0, 12_000_001, 250_000):
            thresholds.append(resolve_tier(Decimal(earned), tiers).minimum_earnings)
        assert thresholds == sorted(thresholds)

    def test_no_tiers(self):
        with pytest.raises(ConfigurationMissing):
            resolve_tier(Decimal("100"), [])


class TestProgress:
    def test_top_tier_is_complete(self):
        assert next_tier(SILVER, TIERS) is None
        assert progress_to_next_tier(Decimal("5000000"), SILVER, TIERS) == Decimal("100")

    def test_equal_thresholds(self):
        first = Tier("A", Decimal("1000"), Decimal("1"), 1)
        second = Tier("B", Decimal("1000"), Decimal("2"), 2)
        tiers = [first, second]
        current = resolve_tier(Decimal("1000"), tiers)
        assert current is first
        # Span between equal thresholds is zero
        assert progress_to_next_tier(Decimal("1000"), second, tiers) == Decimal("100")

    def test_progress_bounded(self):
        for earned in ("0", "500000", "600000", "999999", "1000000", "9000000"):
            amount = Decimal(earned)
            tier = resolve_tier(amount, TIERS)
            progress = progress_to_next_tier(amount, tier, TIERS)
            assert Decimal("0") <= progress <= Decimal("100")

    def test_total_bonus(self):
        assert total_bonus(Decimal("750000"), BRONZE) == Decimal("18750")
        assert total_bonus(Decimal("2000000"), SILVER) == Decimal("100000")

    def test_equal_tier_from_elsewhere(self):
        current = Tier("Bronze", Decimal("500000"), Decimal("2.5"), 2)
        assert current is not BRONZE
        assert next_tier(current, TIERS) is SILVER
        assert progress_to_next_tier(Decimal("750000"), current, TIERS) == Decimal("50")

    def test_persisted_tiers_match_by_id(self):
        loaded = [
            RankingTier(id=1, name="Silver", minimum_earnings=Decimal("1000000"), bonus=Decimal("5"), order=1),
            RankingTier(id=2, name="Bronze", minimum_earnings=Decimal("500000"), bonus=Decimal("2.5"), order=2),
        ]
        reloaded = RankingTier(id=2, name="Bronze", minimum_earnings=Decimal("500000"), bonus=Decimal("2.5"), order=2)
        assert next_tier(reloaded, loaded) is loaded[0]

    def test_unknown_current_tier(self):
        gold = Tier("Gold", Decimal("2000000"), Decimal("7.5"), 1)
        with pytest.raises(TierNotFound):
            progress_to_next_tier(Decimal("2500000"), gold, TIERS)


# ── Tier management ───────────────────────────────────────


class TestTierManagement:
    @pytest.mark.asyncio
    async def test_create_renumbers_by_threshold(self, db_session, bronze_silver_tiers):
        gold = await create_tier(db_session, "Gold", Decimal("2000000"), Decimal("7.5"), "bg-yellow-500")

        tiers = await list_tiers(db_session)
        assert [t.name for t in tiers] == ["Gold", "Silver", "Bronze"]
        assert [t.order for t in tiers] == [1, 2, 3]
        assert gold.color == "bg-yellow-500"

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self, db_session, bronze_silver_tiers):
        with pytest.raises(ConflictError):
            await create_tier(db_session, "Silver", Decimal("3000000"), Decimal("6"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("minimum, bonus", [("-1", "5"), ("1000", "101"), ("1000", "-0.5")])
    async def test_create_invalid_values(self, db_session, minimum, bonus):
        with pytest.raises(ValidationError):
            await create_tier(db_session, "Broken", Decimal(minimum), Decimal(bonus))

    @pytest.mark.asyncio
    async def test_update_partial(self, db_session, bronze_silver_tiers):
        bronze_id = bronze_silver_tiers[1].id
        tier = await update_tier(db_session, bronze_id, bonus=Decimal("3"))
        assert tier.bonus == Decimal("3")
        assert tier.name == "Bronze"
        assert tier.minimum_earnings == Decimal("500000")

    @pytest.mark.asyncio
    async def test_update_threshold_renumbers(self, db_session, bronze_silver_tiers):
        bronze_id = bronze_silver_tiers[1].id

        await update_tier(db_session, bronze_id, minimum_earnings=Decimal("2000000"))

        tiers = await list_tiers(db_session)
        assert [(t.name, t.order) for t in tiers] == [("Bronze", 1), ("Silver", 2)]

    @pytest.mark.asyncio
    async def test_update_missing(self, db_session):
        with pytest.raises(TierNotFound):
            await update_tier(db_session, 999, name="Nope")

    @pytest.mark.asyncio
    async def test_delete_unused_tier_renumbers(self, db_session, bronze_silver_tiers):
        gold = await create_tier(db_session, "Gold", Decimal("2000000"), Decimal("7.5"))

        remaining = await delete_tier(db_session, bronze_silver_tiers[0].id)

        assert [t.name for t in remaining] == ["Gold", "Bronze"]
        assert [t.order for t in remaining] == [1, 2]
        assert gold.order == 1

    @pytest.mark.asyncio
    async def test_delete_tier_in_use(self, db_session, bronze_silver_tiers, make_agent):
        silver_id = bronze_silver_tiers[0].id
        await make_agent(total_earned=Decimal("1500000"))

        with pytest.raises(TierInUse) as exc:
            await delete_tier(db_session, silver_id)

        assert exc.value.current_state == {"tier": "Silver", "agent_count": 1}
        assert len(await list_tiers(db_session)) == 2

    @pytest.mark.asyncio
    async def test_suspended_agents_do_not_block_delete(self, db_session, bronze_silver_tiers, make_agent):
        silver_id = bronze_silver_tiers[0].id
        await make_agent(total_earned=Decimal("1500000"), status=ActorStatus.SUSPENDED)

        remaining = await delete_tier(db_session, silver_id)
        assert [t.name for t in remaining] == ["Bronze"]

    @pytest.mark.asyncio
    async def test_delete_missing(self, db_session):
        with pytest.raises(TierNotFound):
            await delete_tier(db_session, 999)

    @pytest.mark.asyncio
    async def test_reorder(self, db_session, bronze_silver_tiers):
        silver_id, bronze_id = (t.id for t in bronze_silver_tiers)

        tiers = await reorder_tiers(db_session, [bronze_id, silver_id])

        assert [(t.name, t.order) for t in tiers] == [("Bronze", 1), ("Silver", 2)]

    @pytest.mark.asyncio
    async def test_reorder_must_list_every_tier(self, db_session, bronze_silver_tiers):
        silver_id = bronze_silver_tiers[0].id
        with pytest.raises(ValidationError):
            await reorder_tiers(db_session, [silver_id])

    @pytest.mark.asyncio
    async def test_reorder_rejects_duplicates(self, db_session, bronze_silver_tiers):
        silver_id = bronze_silver_tiers[0].id
        with pytest.raises(ValidationError):
            await reorder_tiers(db_session, [silver_id, silver_id])

    @pytest.mark.asyncio
    async def test_reorder_unknown_tier(self, db_session, bronze_silver_tiers):
        ids = [t.id for t in bronze_silver_tiers]
        with pytest.raises(TierNotFound):
            await reorder_tiers(db_session, ids + [999])

    @pytest.mark.asyncio
    async def test_seed_only_when_empty(self, db_session):
        seeded = await seed_default_tiers(db_session)
        assert [t.name for t in seeded] == ["Diamond", "Platinum", "Gold", "Silver", "Bronze"]
        assert await seed_default_tiers(db_session) == []


# ── Agent rankings ────────────────────────────────────────


class TestAgentRankings:
    @pytest.mark.asyncio
    async def test_get_agent_ranking(self, db_session, bronze_silver_tiers, make_agent):
        agent = await make_agent(balance=Decimal("100000"), total_earned=Decimal("750000"))

        ranking, tiers = await get_agent_ranking(db_session, agent.id)

        assert ranking.current_tier.name == "Bronze"
        assert ranking.next_tier.name == "Silver"
        assert ranking.progress_to_next_tier == Decimal("50")
        assert ranking.total_bonus == Decimal("18750")
        assert [t.name for t in tiers] == ["Silver", "Bronze"]

    @pytest.mark.asyncio
    async def test_ranking_follows_new_earnings(self, db_session, bronze_silver_tiers, make_agent, make_tenant):
        agent = await make_agent(total_earned=Decimal("900000"))
        tenant = await make_tenant()

        await add_transaction(db_session, agent.ref, tenant.ref, amount=1000000, commission=100000)
        ranking, _ = await get_agent_ranking(db_session, agent.id)

        assert ranking.total_earned == Decimal("1000000")
        assert ranking.current_tier.name == "Silver"
        assert ranking.progress_to_next_tier == Decimal("100")

    @pytest.mark.asyncio
    async def test_ranking_without_tiers(self, db_session, make_agent):
        agent = await make_agent()
        with pytest.raises(ConfigurationMissing):
            await get_agent_ranking(db_session, agent.id)

    @pytest.mark.asyncio
    async def test_leaderboard(self, db_session, bronze_silver_tiers, make_agent):
        low = await make_agent(total_earned=Decimal("100"))
        top = await make_agent(total_earned=Decimal("3000000"))
        mid = await make_agent(total_earned=Decimal("600000"))
        await make_agent(total_earned=Decimal("9000000"), status=ActorStatus.SUSPENDED)

        board = await leaderboard(db_session, limit=2)

        assert [r.agent.id for r in board] == [top.id, mid.id]
        assert [r.current_tier.name for r in board] == ["Silver", "Bronze"]
        assert low.id not in {r.agent.id for r in board}

    @pytest.mark.asyncio
    async def test_statistics(self, db_session, bronze_silver_tiers, make_agent):
        await make_agent(total_earned=Decimal("600000"))
        await make_agent(total_earned=Decimal("2000000"))
        await make_agent(total_earned=Decimal("100"))

        stats = {s["tier"]: s for s in await ranking_statistics(db_session)}

        assert stats["Silver"]["agent_count"] == 1
        assert stats["Silver"]["total_bonus"] == Decimal("100000")
        assert stats["Bronze"]["agent_count"] == 2
        assert stats["Bronze"]["total_bonus"] == Decimal("65000")

    def test_rank_agent_uses_lifetime_earnings(self):
        class _Agent:
            commission_total_earned = Decimal("1200000")
            commission_balance = Decimal("0")

        tiers = [
            RankingTier(name="Silver", minimum_earnings=Decimal("1000000"), bonus=Decimal("5"), order=1),
            RankingTier(name="Bronze", minimum_earnings=Decimal("500000"), bonus=Decimal("2.5"), order=2),
        ]
        ranking = rank_agent(_Agent(), tiers)
        assert ranking.current_tier.name == "Silver"
        assert ranking.total_bonus == Decimal("60000")
