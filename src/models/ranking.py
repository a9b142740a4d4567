"""
RankingTier model: earnings thresholds that grant a bonus percentage.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class RankingTier(BaseModel):
    """
    Admin-managed reference data.

    An agent's current tier is the highest-threshold tier whose
    minimum_earnings is at or below the agent's total earnings.
    `order` is the display rank, kept dense (1..N).
    """

    __tablename__ = "ranking_tiers"
    __table_args__ = (
        CheckConstraint("minimum_earnings >= 0", name="ck_ranking_tiers_min_earnings"),
        CheckConstraint("bonus >= 0 AND bonus <= 100", name="ck_ranking_tiers_bonus_range"),
    )

    name: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )
    minimum_earnings: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )
    bonus: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        comment="Bonus percentage (0-100)",
    )
    color: Mapped[str] = mapped_column(
        String(50),
        default="bg-gray-500",
        nullable=False,
    )
    order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RankingTier(name='{self.name}', minimum_earnings={self.minimum_earnings}, bonus={self.bonus})>"
