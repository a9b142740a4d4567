"""Referral schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from src.models.actor import ActorKind
from src.models.referral import ReferralStatus
from src.schemas.withdrawal import WithdrawalResponse
from src.utils.masking import mask_email


class ApplyReferralCode(BaseModel):
    code: str = Field(..., min_length=3, max_length=20)


class ReferralCodeResponse(BaseModel):
    referral_code: str


class AppliedReferralResponse(BaseModel):
    """Who referred the caller; the referrer's earnings stay private."""

    referrer_kind: ActorKind
    referrer_name: str


class ReferralTransactionResponse(BaseModel):
    id: int
    amount: Decimal
    commission: Decimal
    description: str
    status: ReferralStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class ReferredUser(BaseModel):
    """Referred actor; the email is masked."""

    id: int
    kind: ActorKind
    first_name: str
    last_name: str
    email: Optional[str] = None


class ReferralEntryResponse(BaseModel):
    """One referral with its earnings history."""

    id: int
    referred_kind: ActorKind
    referred_id: int
    referred_user: Optional[ReferredUser] = None
    commission: Decimal
    status: ReferralStatus
    is_paid: bool
    paid_at: Optional[datetime]
    created_at: datetime
    transactions: List[ReferralTransactionResponse] = []


class ReferralSummaryResponse(BaseModel):
    """Referral overview of the calling actor."""

    kind: ActorKind
    first_name: str
    last_name: str
    referral_code: str
    balance: Decimal
    total_earned: Decimal
    referred_by_kind: Optional[ActorKind] = None
    referred_by_id: Optional[int] = None
    referrals: List[ReferralEntryResponse]
    withdrawals: List[WithdrawalResponse] = []

    @classmethod
    def from_summary(cls, summary) -> "ReferralSummaryResponse":
        """
        Build from a services.referrals.ReferralSummary.

        Referred users' emails are masked.
        """
        referrals = []
        for item in summary.entries:
            entry = item["entry"]
            user = item["referred_user"]
            referrals.append(
                ReferralEntryResponse(
                    id=entry.id,
                    referred_kind=entry.referred_kind,
                    referred_id=entry.referred_id,
                    referred_user=ReferredUser(
                        id=user["id"],
                        kind=user["kind"],
                        first_name=user["first_name"],
                        last_name=user["last_name"],
                        email=mask_email(user["email"]),
                    ) if user else None,
                    commission=entry.commission,
                    status=entry.status,
                    is_paid=entry.is_paid,
                    paid_at=entry.paid_at,
                    created_at=entry.created_at,
                    transactions=[
                        ReferralTransactionResponse.model_validate(t)
                        for t in entry.transactions
                    ],
                )
            )

        referred_by = summary.referred_by
        return cls(
            kind=summary.actor.kind,
            first_name=summary.first_name,
            last_name=summary.last_name,
            referral_code=summary.referral_code,
            balance=summary.balance,
            total_earned=summary.total_earned,
            referred_by_kind=referred_by.kind if referred_by else None,
            referred_by_id=referred_by.id if referred_by else None,
            referrals=referrals,
            withdrawals=[WithdrawalResponse.model_validate(w) for w in summary.withdrawals],
        )
