"""
Tiered commission calculation.

Rules:
- The base amount is normalized with the payment-frequency multiplier
- The active config's tier containing the normalized amount gives the rate
- No matching tier: the config's base rate applies
- Multipliers come from settings, overridable per config
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.config import settings
from src.models import CommissionConfig, CommissionConfigStatus, CommissionTierRate
from src.services.errors import ConfigurationMissing, NotFoundError, ValidationError
from src.services.ledger import atomic

logger = logging.getLogger(__name__)

# Rate table seeded when no config exists
DEFAULT_BASE_RATE = Decimal("10")
DEFAULT_TIER_RATES = [
    (Decimal("0"), Decimal("100000"), Decimal("7")),
    (Decimal("100001"), Decimal("500000"), Decimal("10")),
    (Decimal("500001"), Decimal("1000000"), Decimal("12")),
    (Decimal("1000001"), None, Decimal("15")),
]


@dataclass(frozen=True)
class TierRateSpec:
    """Input for one bracket of a new config."""

    min_amount: Decimal
    max_amount: Optional[Decimal]
    rate: Decimal


def _to_decimal(value, field: str) -> Decimal:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a number") from e


def resolve_multipliers(config: Optional[CommissionConfig] = None) -> dict[str, Decimal]:
    """Configured multiplier table with the config's overrides applied."""
    multipliers = {k.lower(): Decimal(str(v)) for k, v in settings.commission_frequency_multipliers.items()}
    if config is not None and config.frequency_multipliers:
        for key, value in config.frequency_multipliers.items():
            multipliers[key.lower()] = _to_decimal(value, f"multiplier '{key}'")
    return multipliers


def normalize_amount(
    base_amount: Decimal,
    payment_frequency: Optional[str],
    multipliers: Mapping[str, Decimal],
) -> Decimal:
    """Scale a base amount by its payment-frequency multiplier (unknown frequencies count once)."""
    key = (payment_frequency or "").lower()
    multiplier = multipliers.get(key)
    if multiplier is None:
        logger.debug(f"No multiplier for payment frequency '{payment_frequency}', using 1")
        multiplier = Decimal("1")
    return base_amount * multiplier


def select_rate(config: CommissionConfig, normalized_amount: Decimal) -> Decimal:
    """Rate of the tier containing the amount, else the config's base rate."""
    for tier in config.tier_rates:
        if tier.contains(normalized_amount):
            return tier.rate
    return config.base_rate


def compute_commission(
    config: CommissionConfig,
    base_amount,
    payment_frequency: Optional[str],
    multipliers: Optional[Mapping[str, Decimal]] = None,
) -> Decimal:
    """
    Pure commission computation over an already-loaded config.

    Args:
        config: Commission config with tier_rates loaded
        base_amount: Positive amount (rent, sale, unit purchase)
        payment_frequency: monthly, quarterly, biannually, annually, ...
        multipliers: Frequency table; defaults to resolve_multipliers(config)

    Returns:
        normalized_amount * rate / 100
    """
    amount = _to_decimal(base_amount, "base_amount")
    if amount <= 0:
        raise ValidationError("base_amount must be positive")

    if multipliers is None:
        multipliers = resolve_multipliers(config)

    normalized = normalize_amount(amount, payment_frequency, multipliers)
    rate = select_rate(config, normalized)
    return normalized * rate / Decimal("100")


async def get_active_config(db: AsyncSession) -> Optional[CommissionConfig]:
    """Active config with the most recent effective date."""
    result = await db.execute(
        select(CommissionConfig)
        .where(CommissionConfig.status == CommissionConfigStatus.ACTIVE)
        .options(selectinload(CommissionConfig.tier_rates))
        .order_by(CommissionConfig.effective_date.desc(), CommissionConfig.id.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def calculate_commission(
    db: AsyncSession,
    base_amount,
    payment_frequency: Optional[str],
) -> Decimal:
    """
    Commission for a base amount under the active config.

    Raises:
        ValidationError: base_amount is not a positive number
        ConfigurationMissing: no active commission config
    """
    config = await get_active_config(db)
    if config is None:
        raise ConfigurationMissing("Commission configuration not found")
    return compute_commission(config, base_amount, payment_frequency)


def validate_tier_rates(tiers: Sequence[TierRateSpec]) -> list[TierRateSpec]:
    """Check rates and ranges; tiers must not overlap. Returns tiers sorted by min_amount."""
    ordered = sorted(tiers, key=lambda t: t.min_amount)
    for tier in ordered:
        if tier.min_amount < 0:
            raise ValidationError("Tier min_amount must not be negative")
        if tier.max_amount is not None and tier.max_amount < tier.min_amount:
            raise ValidationError(
                f"Tier max_amount {tier.max_amount} is below min_amount {tier.min_amount}"
            )
        if not Decimal("0") <= tier.rate <= Decimal("100"):
            raise ValidationError("Tier rate must be between 0 and 100")

    for lower, upper in zip(ordered, ordered[1:]):
        if lower.max_amount is None or upper.min_amount <= lower.max_amount:
            raise ValidationError(
                f"Tier starting at {upper.min_amount} overlaps the tier starting at {lower.min_amount}"
            )
    return ordered


async def create_commission_config(
    db: AsyncSession,
    base_rate,
    tier_rates: Iterable[TierRateSpec],
    frequency_multipliers: Optional[dict] = None,
    effective_date: Optional[datetime] = None,
    activate: bool = True,
) -> CommissionConfig:
    """
    Create a commission config.

    When activated, every other active config is deactivated in the same
    transaction so only one config is active at a time.
    """
    base_rate = _to_decimal(base_rate, "base_rate")
    if not Decimal("0") <= base_rate <= Decimal("100"):
        raise ValidationError("base_rate must be between 0 and 100")

    tiers = validate_tier_rates(list(tier_rates))

    if frequency_multipliers:
        for key, value in frequency_multipliers.items():
            if _to_decimal(value, f"multiplier '{key}'") <= 0:
                raise ValidationError(f"Multiplier for '{key}' must be positive")
        frequency_multipliers = {k.lower(): str(v) for k, v in frequency_multipliers.items()}

    async with atomic(db):
        if activate:
            await db.execute(
                update(CommissionConfig)
                .where(CommissionConfig.status == CommissionConfigStatus.ACTIVE)
                .values(status=CommissionConfigStatus.INACTIVE)
                .execution_options(synchronize_session=False)
            )

        config = CommissionConfig(
            base_rate=base_rate,
            frequency_multipliers=frequency_multipliers or None,
            status=CommissionConfigStatus.ACTIVE if activate else CommissionConfigStatus.INACTIVE,
            tier_rates=[
                CommissionTierRate(
                    min_amount=t.min_amount,
                    max_amount=t.max_amount,
                    rate=t.rate,
                )
                for t in tiers
            ],
        )
        if effective_date is not None:
            config.effective_date = effective_date
        db.add(config)

    logger.info(f"Commission config {config.id} created (active={activate}, tiers={len(tiers)})")
    return config


async def list_commission_configs(db: AsyncSession) -> list[CommissionConfig]:
    """All configs, newest first."""
    result = await db.execute(
        select(CommissionConfig)
        .options(selectinload(CommissionConfig.tier_rates))
        .order_by(CommissionConfig.effective_date.desc(), CommissionConfig.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def deactivate_commission_config(db: AsyncSession, config_id: int) -> CommissionConfig:
    """Mark a config inactive. Raises NotFoundError if it does not exist."""
    async with atomic(db):
        result = await db.execute(
            select(CommissionConfig)
            .where(CommissionConfig.id == config_id)
            .options(selectinload(CommissionConfig.tier_rates))
            .with_for_update()
        )
        config = result.scalar_one_or_none()
        if config is None:
            raise NotFoundError(f"Commission config {config_id} not found")
        config.status = CommissionConfigStatus.INACTIVE

    logger.info(f"Commission config {config_id} deactivated")
    return config


async def seed_default_commission_config(db: AsyncSession) -> Optional[CommissionConfig]:
    """Create the default rate table if no config exists yet."""
    existing = await db.scalar(select(CommissionConfig.id).limit(1))
    if existing is not None:
        return None

    return await create_commission_config(
        db,
        base_rate=DEFAULT_BASE_RATE,
        tier_rates=[
            TierRateSpec(min_amount=lo, max_amount=hi, rate=rate)
            for lo, hi, rate in DEFAULT_TIER_RATES
        ],
    )
