"""
CommissionConfig model: the tiered rate table used by the commission calculator.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, BaseModel, utc_now


class CommissionConfigStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CommissionConfig(BaseModel):
    """
    Commission rate configuration.

    Only one config is active at a time; lookups take the active config
    with the most recent effective_date.
    """

    __tablename__ = "commission_configs"

    base_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("10"),
        nullable=False,
        comment="Rate (%) used when no tier matches",
    )
    frequency_multipliers: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Overrides for the configured payment frequency multipliers",
    )
    effective_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True,
    )
    status: Mapped[CommissionConfigStatus] = mapped_column(
        SQLAlchemyEnum(
            CommissionConfigStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=CommissionConfigStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    tier_rates: Mapped[List["CommissionTierRate"]] = relationship(
        "CommissionTierRate",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="CommissionTierRate.min_amount",
    )

    def __repr__(self) -> str:
        return f"<CommissionConfig(id={self.id}, base_rate={self.base_rate}, status={self.status})>"


class CommissionTierRate(Base):
    """Inclusive [min_amount, max_amount] bracket; max_amount NULL means unbounded."""

    __tablename__ = "commission_tier_rates"

    id: Mapped[int] = mapped_column(primary_key=True)
    config_id: Mapped[int] = mapped_column(
        ForeignKey("commission_configs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    min_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 2),
        nullable=False,
    )
    max_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(16, 2),
        nullable=True,
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
    )

    config: Mapped["CommissionConfig"] = relationship(
        "CommissionConfig",
        back_populates="tier_rates",
    )

    def contains(self, amount: Decimal) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount

    def __repr__(self) -> str:
        return f"<CommissionTierRate({self.min_amount}-{self.max_amount} @ {self.rate}%)>"
