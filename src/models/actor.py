"""
Actor models: agents, landlords and tenants.

All three carry the same referral/commission ledger block; agents
additionally hold bank details and withdrawal settings.
"""

import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, List, Optional, Type, Union

from sqlalchemy import CheckConstraint, DateTime, Numeric, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship, validates

from src.config import settings
from src.models.base import BaseModel

if TYPE_CHECKING:
    from src.models.withdrawal import WithdrawalRequest


class ActorKind(str, Enum):
    """Kind tag of a polymorphic actor reference."""
    AGENT = "agent"
    LANDLORD = "landlord"
    TENANT = "tenant"


class ActorStatus(str, Enum):
    """Account status."""
    ACTIVE = "active"
    SUSPENDED = "suspended"


class WithdrawalType(str, Enum):
    """Payout cadence requested by an agent."""
    PARTIAL = "partial"
    QUARTERLY = "quarterly"
    BIANNUAL = "biannual"
    ANNUAL = "annual"


class BankAccountType(str, Enum):
    SAVINGS = "savings"
    CURRENT = "current"


REFERRAL_CODE_PREFIXES = {
    ActorKind.AGENT: "AG",
    ActorKind.LANDLORD: "LL",
    ActorKind.TENANT: "TN",
}

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_SUFFIX_LENGTH = 8


def generate_referral_code(kind: ActorKind) -> str:
    """Generate a referral code: kind prefix plus a random suffix."""
    suffix = "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET)
        for _ in range(REFERRAL_CODE_SUFFIX_LENGTH)
    )
    return f"{REFERRAL_CODE_PREFIXES[ActorKind(kind)]}{suffix}"


@dataclass(frozen=True)
class ActorRef:
    """
    Tagged reference to an actor of any kind.

    Also serves as the actor context passed from the request down to
    the services.
    """

    kind: ActorKind
    id: int

    def __post_init__(self):
        # Accept plain strings; unknown kinds raise ValueError
        object.__setattr__(self, "kind", ActorKind(self.kind))

    @classmethod
    def of(cls, actor: "Actor") -> "ActorRef":
        return cls(kind=actor.kind, id=actor.id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class ActorMixin(BaseModel):
    """Columns shared by every actor kind."""

    __abstract__ = True

    kind: ClassVar[ActorKind]

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    status: Mapped[ActorStatus] = mapped_column(
        SQLAlchemyEnum(
            ActorStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=ActorStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    @declared_attr
    def referral_code(cls) -> Mapped[str]:
        return mapped_column(
            String(20),
            unique=True,
            index=True,
            nullable=False,
            default=lambda: generate_referral_code(cls.kind),
        )

    # Polymorphic reference to whoever referred this actor
    referred_by_kind: Mapped[Optional[ActorKind]] = mapped_column(
        SQLAlchemyEnum(
            ActorKind,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
    )
    referred_by_id: Mapped[Optional[int]] = mapped_column(
        nullable=True,
        index=True,
    )

    # Ledger
    commission_balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
        comment="Funds available to withdraw",
    )
    commission_total_earned: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
        index=True,
        comment="Lifetime earnings, used for ranking",
    )

    @declared_attr.directive
    def __table_args__(cls):
        return (
            CheckConstraint(
                "commission_balance >= 0",
                name=f"ck_{cls.__tablename__}_balance_non_negative",
            ),
            CheckConstraint(
                "commission_balance <= commission_total_earned",
                name=f"ck_{cls.__tablename__}_balance_within_earnings",
            ),
        )

    @validates("referral_code")
    def _validate_referral_code(self, key, value):
        current = self.__dict__.get(key)
        if current is not None and value != current:
            raise ValueError("referral code is immutable once set")
        return value

    @property
    def ref(self) -> ActorRef:
        return ActorRef(kind=self.kind, id=self.id)

    @property
    def referred_by(self) -> Optional[ActorRef]:
        if self.referred_by_kind is None or self.referred_by_id is None:
            return None
        return ActorRef(kind=self.referred_by_kind, id=self.referred_by_id)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(id={self.id}, "
            f"balance={self.commission_balance}, "
            f"total_earned={self.commission_total_earned})>"
        )


class Agent(ActorMixin):
    """
    Sales agent.

    Agents are the only actors with the full withdrawal request/approval
    flow, so they also carry bank details and withdrawal limits.
    """

    __tablename__ = "agents"
    kind = ActorKind.AGENT

    business_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )

    # Bank details
    bank_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    account_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    account_type: Mapped[Optional[BankAccountType]] = mapped_column(
        SQLAlchemyEnum(
            BankAccountType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
    )

    # Withdrawal settings
    minimum_withdrawal_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=lambda: settings.default_minimum_withdrawal,
        nullable=False,
    )
    maximum_withdrawal_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=lambda: settings.default_maximum_withdrawal,
        nullable=False,
    )
    preferred_withdrawal_type: Mapped[WithdrawalType] = mapped_column(
        SQLAlchemyEnum(
            WithdrawalType,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=WithdrawalType.PARTIAL,
        nullable=False,
    )
    last_withdrawal_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    withdrawals: Mapped[List["WithdrawalRequest"]] = relationship(
        "WithdrawalRequest",
        back_populates="agent",
        order_by="WithdrawalRequest.request_date",
    )

    @property
    def has_bank_details(self) -> bool:
        return bool(
            self.bank_name
            and self.account_name
            and self.account_number
            and len(self.account_number) == 10
            and self.account_number.isdigit()
        )


class Landlord(ActorMixin):
    """Property owner."""

    __tablename__ = "landlords"
    kind = ActorKind.LANDLORD


class Tenant(ActorMixin):
    """Renter of a property unit."""

    __tablename__ = "tenants"
    kind = ActorKind.TENANT


Actor = Union[Agent, Landlord, Tenant]

# Dispatch table used to resolve a polymorphic reference
ACTOR_MODELS: dict[ActorKind, Type[ActorMixin]] = {
    ActorKind.AGENT: Agent,
    ActorKind.LANDLORD: Landlord,
    ActorKind.TENANT: Tenant,
}


def actor_model(kind: Union[ActorKind, str]) -> Type[ActorMixin]:
    """Return the model class for an actor kind (raises ValueError if unknown)."""
    return ACTOR_MODELS[ActorKind(kind)]
