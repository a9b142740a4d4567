"""Business logic services."""

from src.services.commission import calculate_commission
from src.services.ranking import resolve_tier
from src.services.referrals import add_transaction, record_referral
from src.services.withdrawals import approve_withdrawal, reject_withdrawal, request_withdrawal

__all__ = [
    "add_transaction",
    "approve_withdrawal",
    "calculate_commission",
    "record_referral",
    "reject_withdrawal",
    "request_withdrawal",
    "resolve_tier",
]
