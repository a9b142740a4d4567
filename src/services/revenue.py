"""
Revenue-event hooks.

Property flows (leases, unit purchases, tenant assignment) call these to
pay the referrer of the actor that generated the revenue. An actor
without a referrer earns nobody anything and the hook returns None.
"""

import logging
from decimal import Decimal
from typing import Optional

from src.config import settings
from src.models import ActorKind, ActorMixin, ActorRef, ReferralEntry
from src.services.commission import calculate_commission
from src.services.errors import ActorNotFound, ValidationError
from src.services.ledger import get_actor
from src.services.referrals import add_transaction, settle_referral

logger = logging.getLogger(__name__)

LEASE_COMMISSION_DESCRIPTION = "Lease commission"
UNIT_PURCHASE_COMMISSION_DESCRIPTION = "Property unit commission"


async def _require_actor(db, ref: ActorRef) -> ActorMixin:
    actor = await get_actor(db, ref)
    if actor is None:
        raise ActorNotFound(f"{ref.kind.value.capitalize()} {ref.id} not found")
    return actor


async def credit_lease_commission(
    db,
    tenant_id: int,
    rent,
    payment_frequency: Optional[str],
) -> Optional[ReferralEntry]:
    """Pay the tenant's referrer the configured commission on a lease."""
    tenant = await _require_actor(db, ActorRef(kind=ActorKind.TENANT, id=tenant_id))
    if tenant.referred_by is None:
        return None

    commission = await calculate_commission(db, rent, payment_frequency)
    return await add_transaction(
        db,
        tenant.referred_by,
        tenant.ref,
        amount=rent,
        commission=commission,
        description=LEASE_COMMISSION_DESCRIPTION,
    )


async def credit_unit_purchase_commission(
    db,
    landlord_id: int,
    amount,
) -> Optional[ReferralEntry]:
    """
    Pay an agent who referred a landlord a flat share of a unit purchase.

    Only agent referrers earn on unit purchases.
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValidationError("Purchase amount must be positive")

    landlord = await _require_actor(db, ActorRef(kind=ActorKind.LANDLORD, id=landlord_id))
    referrer = landlord.referred_by
    if referrer is None or referrer.kind != ActorKind.AGENT:
        return None

    commission = amount * settings.unit_purchase_commission_rate / Decimal("100")
    logger.info(f"Unit purchase by landlord {landlord_id}: {commission} to {referrer}")
    return await add_transaction(
        db,
        referrer,
        landlord.ref,
        amount=amount,
        commission=commission,
        description=UNIT_PURCHASE_COMMISSION_DESCRIPTION,
    )


async def settle_tenant_assignment(db, tenant_id: int) -> Optional[ReferralEntry]:
    """A referred tenant moved into a unit: mark the referral as paid out."""
    tenant = await _require_actor(db, ActorRef(kind=ActorKind.TENANT, id=tenant_id))
    if tenant.referred_by is None:
        return None
    return await settle_referral(db, tenant.referred_by, tenant.ref)
