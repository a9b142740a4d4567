"""Panel referral API endpoints (agents, landlords and tenants)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_actor_context
from src.db import get_db
from src.models import ActorRef
from src.schemas.referral import (
    AppliedReferralResponse,
    ApplyReferralCode,
    ReferralCodeResponse,
    ReferralSummaryResponse,
)
from src.services import referrals as referral_service
from src.services.ledger import get_actor

router = APIRouter(prefix="/referrals")


@router.get("", response_model=ReferralSummaryResponse)
async def get_referrals(
    db: AsyncSession = Depends(get_db),
    actor: ActorRef = Depends(get_actor_context),
):
    """Referral code, earnings and everyone you referred."""
    summary = await referral_service.get_referral_summary(db, actor)
    return ReferralSummaryResponse.from_summary(summary)


@router.get("/code", response_model=ReferralCodeResponse)
async def get_referral_code(
    db: AsyncSession = Depends(get_db),
    actor: ActorRef = Depends(get_actor_context),
):
    """Your referral code."""
    code = await referral_service.ensure_referral_code(db, actor)
    return ReferralCodeResponse(referral_code=code)


@router.post("/apply", response_model=AppliedReferralResponse, status_code=201)
async def apply_referral_code(
    data: ApplyReferralCode,
    db: AsyncSession = Depends(get_db),
    actor: ActorRef = Depends(get_actor_context),
):
    """Register who referred you."""
    entry = await referral_service.apply_referral_code(db, actor, data.code)
    referrer = await get_actor(db, ActorRef(kind=entry.referrer_kind, id=entry.referrer_id))
    return AppliedReferralResponse(
        referrer_kind=entry.referrer_kind,
        referrer_name=f"{referrer.first_name} {referrer.last_name}",
    )
