"""
WithdrawalRequest model for agent payouts.
"""

import secrets
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.actor import WithdrawalType
from src.models.base import BaseModel, utc_now

if TYPE_CHECKING:
    from src.models.actor import Agent
    from src.models.admin import Admin


class WithdrawalStatus(str, Enum):
    """Lifecycle of a withdrawal request. Only PENDING is mutable."""
    PENDING = "pending"
    COMPLETED = "completed"            # Approved and debited
    FAILED = "failed"                  # Rejected by an admin
    CANCELLED = "cancelled"            # Withdrawn by the agent


def generate_transaction_reference() -> str:
    """Unique payout reference, e.g. WTH1718000000000K3F9Q."""
    millis = int(utc_now().timestamp() * 1000)
    return f"WTH{millis}{secrets.token_hex(3).upper()[:5]}"


class WithdrawalRequest(BaseModel):
    """
    An agent's request to convert ledger balance into a payout.

    The balance is debited when an admin approves the request;
    rejection and cancellation leave the balance untouched.
    """

    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawal_requests_amount_positive"),
    )

    agent_id: Mapped[int] = mapped_column(
        ForeignKey("agents.id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )
    status: Mapped[WithdrawalStatus] = mapped_column(
        SQLAlchemyEnum(
            WithdrawalStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=WithdrawalStatus.PENDING,
        nullable=False,
        index=True,
    )
    withdrawal_type: Mapped[WithdrawalType] = mapped_column(
        SQLAlchemyEnum(
            WithdrawalType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    transaction_reference: Mapped[str] = mapped_column(
        String(40),
        unique=True,
        default=generate_transaction_reference,
        nullable=False,
    )
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True,
    )
    processed_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    processed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("admins.id"),
        nullable=True,
    )
    remarks: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    agent: Mapped["Agent"] = relationship(
        "Agent",
        back_populates="withdrawals",
    )
    processed_by: Mapped[Optional["Admin"]] = relationship("Admin")

    def __repr__(self) -> str:
        return f"<WithdrawalRequest(id={self.id}, agent_id={self.agent_id}, amount={self.amount}, status={self.status})>"
