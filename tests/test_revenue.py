"""
Tests for revenue-event hooks (lease, unit purchase, tenant assignment).
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from src.models import ActorKind
from src.services.commission import TierRateSpec, create_commission_config
from src.services.errors import ActorNotFound, ConfigurationMissing, ValidationError
from src.services.ledger import get_snapshot
from src.services.revenue import (
    LEASE_COMMISSION_DESCRIPTION,
    UNIT_PURCHASE_COMMISSION_DESCRIPTION,
    credit_lease_commission,
    credit_unit_purchase_commission,
    settle_tenant_assignment,
)


@pytest_asyncio.fixture
async def commission_config(db_session):
    return await create_commission_config(
        db_session,
        base_rate=Decimal("10"),
        tier_rates=[
            TierRateSpec(Decimal("0"), Decimal("100000"), Decimal("7")),
            TierRateSpec(Decimal("100001"), Decimal("500000"), Decimal("10")),
        ],
    )


# ── Leases ────────────────────────────────────────────────


class TestLeaseCommission:
    @pytest.mark.asyncio
    async def test_referrer_credited(self, db_session, commission_config, make_agent, make_tenant):
        agent = await make_agent()
        tenant = await make_tenant(referred_by_kind=ActorKind.AGENT, referred_by_id=agent.id)

        entry = await credit_lease_commission(db_session, tenant.id, Decimal("50000"), "monthly")

        assert entry.commission == Decimal("3500")
        assert entry.transactions[0].description == LEASE_COMMISSION_DESCRIPTION
        snapshot = await get_snapshot(db_session, agent.ref)
        assert snapshot.balance == Decimal("3500")

    @pytest.mark.asyncio
    async def test_tenant_without_referrer(self, db_session, commission_config, make_tenant):
        tenant = await make_tenant()
        assert await credit_lease_commission(db_session, tenant.id, Decimal("50000"), "monthly") is None

    @pytest.mark.asyncio
    async def test_missing_tenant(self, db_session, commission_config):
        with pytest.raises(ActorNotFound):
            await credit_lease_commission(db_session, 999, Decimal("50000"), "monthly")

    @pytest.mark.asyncio
    async def test_requires_active_config(self, db_session, make_landlord, make_tenant):
        landlord = await make_landlord()
        tenant = await make_tenant(referred_by_kind=ActorKind.LANDLORD, referred_by_id=landlord.id)
        landlord_ref = landlord.ref

        with pytest.raises(ConfigurationMissing):
            await credit_lease_commission(db_session, tenant.id, Decimal("50000"), "monthly")

        snapshot = await get_snapshot(db_session, landlord_ref)
        assert snapshot.balance == Decimal("0")


# ── Unit purchases ────────────────────────────────────────


class TestUnitPurchaseCommission:
    @pytest.mark.asyncio
    async def test_agent_referrer_earns_share(self, db_session, make_agent, make_landlord):
        agent = await make_agent()
        landlord = await make_landlord(referred_by_kind=ActorKind.AGENT, referred_by_id=agent.id)

        entry = await credit_unit_purchase_commission(db_session, landlord.id, Decimal("1000000"))

        # Default unit purchase rate is 6%
        assert entry.commission == Decimal("60000")
        assert entry.transactions[0].description == UNIT_PURCHASE_COMMISSION_DESCRIPTION
        snapshot = await get_snapshot(db_session, agent.ref)
        assert snapshot.total_earned == Decimal("60000")

    @pytest.mark.asyncio
    async def test_non_agent_referrer_earns_nothing(self, db_session, make_tenant, make_landlord):
        tenant = await make_tenant()
        landlord = await make_landlord(referred_by_kind=ActorKind.TENANT, referred_by_id=tenant.id)

        assert await credit_unit_purchase_commission(db_session, landlord.id, Decimal("1000000")) is None

    @pytest.mark.asyncio
    async def test_rejects_non_positive_amount(self, db_session, make_landlord):
        landlord = await make_landlord()
        with pytest.raises(ValidationError):
            await credit_unit_purchase_commission(db_session, landlord.id, 0)


# ── Tenant assignment ─────────────────────────────────────


class TestTenantAssignment:
    @pytest.mark.asyncio
    async def test_settles_referral(self, db_session, commission_config, make_agent, make_tenant):
        agent = await make_agent()
        tenant = await make_tenant(referred_by_kind=ActorKind.AGENT, referred_by_id=agent.id)
        await credit_lease_commission(db_session, tenant.id, Decimal("50000"), "monthly")

        entry = await settle_tenant_assignment(db_session, tenant.id)

        assert entry.is_paid is True
        snapshot = await get_snapshot(db_session, agent.ref)
        assert snapshot.balance == Decimal("3500")

    @pytest.mark.asyncio
    async def test_unreferred_tenant(self, db_session, make_tenant):
        tenant = await make_tenant()
        assert await settle_tenant_assignment(db_session, tenant.id) is None
