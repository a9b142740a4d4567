"""
Database models for the referral commission ledger.

All models are exported here for convenient imports:
    from src.models import Agent, ReferralEntry, WithdrawalRequest, etc.
"""

from src.models.actor import (
    ACTOR_MODELS,
    Actor,
    ActorKind,
    ActorMixin,
    ActorRef,
    ActorStatus,
    Agent,
    BankAccountType,
    Landlord,
    Tenant,
    WithdrawalType,
    actor_model,
    generate_referral_code,
)
from src.models.admin import Admin
from src.models.audit import AuditAction, AuditLog
from src.models.base import Base, BaseModel, TimestampMixin
from src.models.commission_config import (
    CommissionConfig,
    CommissionConfigStatus,
    CommissionTierRate,
)
from src.models.notification import Notification
from src.models.ranking import RankingTier
from src.models.referral import ReferralEntry, ReferralStatus, ReferralTransaction
from src.models.withdrawal import WithdrawalRequest, WithdrawalStatus

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    # Actors
    "ACTOR_MODELS",
    "Actor",
    "ActorKind",
    "ActorMixin",
    "ActorRef",
    "ActorStatus",
    "Agent",
    "BankAccountType",
    "Landlord",
    "Tenant",
    "WithdrawalType",
    "actor_model",
    "generate_referral_code",
    # Admin
    "Admin",
    # Audit
    "AuditLog",
    "AuditAction",
    # Commission
    "CommissionConfig",
    "CommissionConfigStatus",
    "CommissionTierRate",
    # Notification
    "Notification",
    # Ranking
    "RankingTier",
    # Referral
    "ReferralEntry",
    "ReferralStatus",
    "ReferralTransaction",
    # Withdrawal
    "WithdrawalRequest",
    "WithdrawalStatus",
]
