"""Pydantic schemas for request/response validation."""

from src.schemas.commission import (
    CommissionConfigCreate,
    CommissionConfigResponse,
    CommissionQuoteResponse,
    TierRateInput,
)
from src.schemas.ranking import (
    AgentRankingResponse,
    MyRankingResponse,
    TierCreate,
    TierReorder,
    TierResponse,
    TierStatistics,
    TierUpdate,
)
from src.schemas.referral import (
    AppliedReferralResponse,
    ApplyReferralCode,
    ReferralCodeResponse,
    ReferralEntryResponse,
    ReferralSummaryResponse,
)
from src.schemas.withdrawal import (
    WithdrawalApprove,
    WithdrawalCreate,
    WithdrawalListResponse,
    WithdrawalReject,
    WithdrawalResponse,
    WithdrawalSettingsUpdate,
    WithdrawalStatsResponse,
    WithdrawalStatusResponse,
)

__all__ = [
    # Commission
    "CommissionConfigCreate",
    "CommissionConfigResponse",
    "CommissionQuoteResponse",
    "TierRateInput",
    # Ranking
    "AgentRankingResponse",
    "MyRankingResponse",
    "TierCreate",
    "TierReorder",
    "TierResponse",
    "TierStatistics",
    "TierUpdate",
    # Referral
    "AppliedReferralResponse",
    "ApplyReferralCode",
    "ReferralCodeResponse",
    "ReferralEntryResponse",
    "ReferralSummaryResponse",
    # Withdrawal
    "WithdrawalApprove",
    "WithdrawalCreate",
    "WithdrawalListResponse",
    "WithdrawalReject",
    "WithdrawalResponse",
    "WithdrawalSettingsUpdate",
    "WithdrawalStatsResponse",
    "WithdrawalStatusResponse",
]
