"""
Referral graph models.

A ReferralEntry links a referrer to one referred actor and accumulates
the commission earned from that actor's revenue events.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.actor import ActorKind, ActorRef
from src.models.base import Base, BaseModel, utc_now


class ReferralStatus(str, Enum):
    """Status of a referral entry or of a single transaction."""
    PENDING = "pending"
    COMPLETED = "completed"


def _actor_kind_enum() -> SQLAlchemyEnum:
    return SQLAlchemyEnum(
        ActorKind,
        values_callable=lambda x: [e.value for e in x],
    )


def _referral_status_enum() -> SQLAlchemyEnum:
    return SQLAlchemyEnum(
        ReferralStatus,
        values_callable=lambda x: [e.value for e in x],
    )


class ReferralEntry(BaseModel):
    """
    One referrer -> referred relationship.

    Invariant: commission == sum(t.commission for t in transactions).
    Entries are created on the first revenue event and only ever updated.
    """

    __tablename__ = "referral_entries"
    __table_args__ = (
        UniqueConstraint(
            "referrer_kind",
            "referrer_id",
            "referred_kind",
            "referred_id",
            name="uq_referral_entries_pair",
        ),
    )

    referrer_kind: Mapped[ActorKind] = mapped_column(_actor_kind_enum(), nullable=False)
    referrer_id: Mapped[int] = mapped_column(nullable=False, index=True)
    referred_kind: Mapped[ActorKind] = mapped_column(_actor_kind_enum(), nullable=False)
    referred_id: Mapped[int] = mapped_column(nullable=False)

    commission: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
        comment="Cumulative commission earned from this referral",
    )
    status: Mapped[ReferralStatus] = mapped_column(
        _referral_status_enum(),
        default=ReferralStatus.PENDING,
        nullable=False,
    )
    is_paid: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    transactions: Mapped[List["ReferralTransaction"]] = relationship(
        "ReferralTransaction",
        back_populates="entry",
        order_by="ReferralTransaction.id",
    )

    @property
    def referrer(self) -> ActorRef:
        return ActorRef(kind=self.referrer_kind, id=self.referrer_id)

    @property
    def referred(self) -> ActorRef:
        return ActorRef(kind=self.referred_kind, id=self.referred_id)

    def __repr__(self) -> str:
        return (
            f"<ReferralEntry(id={self.id}, referrer={self.referrer}, "
            f"referred={self.referred}, commission={self.commission})>"
        )


class ReferralTransaction(Base):
    """A single commission-bearing event on a referral entry."""

    __tablename__ = "referral_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("referral_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        comment="Revenue amount the commission was computed from",
    )
    commission: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        String(255),
        default="Commission earned",
        nullable=False,
    )
    status: Mapped[ReferralStatus] = mapped_column(
        _referral_status_enum(),
        default=ReferralStatus.COMPLETED,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    entry: Mapped["ReferralEntry"] = relationship(
        "ReferralEntry",
        back_populates="transactions",
    )

    def __repr__(self) -> str:
        return f"<ReferralTransaction(id={self.id}, entry_id={self.entry_id}, commission={self.commission})>"
