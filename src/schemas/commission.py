"""Commission configuration schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.models.commission_config import CommissionConfigStatus


class TierRateInput(BaseModel):
    """One bracket; max_amount None means unbounded."""

    min_amount: Decimal = Field(..., ge=0)
    max_amount: Optional[Decimal] = Field(None, ge=0)
    rate: Decimal = Field(..., ge=0, le=100)


class CommissionConfigCreate(BaseModel):
    base_rate: Decimal = Field(..., ge=0, le=100)
    tier_rates: List[TierRateInput] = []
    frequency_multipliers: Optional[Dict[str, Decimal]] = None
    effective_date: Optional[datetime] = None
    activate: bool = True


class TierRateResponse(BaseModel):
    min_amount: Decimal
    max_amount: Optional[Decimal]
    rate: Decimal

    model_config = {"from_attributes": True}


class CommissionConfigResponse(BaseModel):
    id: int
    base_rate: Decimal
    frequency_multipliers: Optional[Dict[str, Decimal]]
    effective_date: datetime
    status: CommissionConfigStatus
    tier_rates: List[TierRateResponse]

    model_config = {"from_attributes": True}


class CommissionQuoteResponse(BaseModel):
    """Commission a base amount would earn under the active config."""

    base_amount: Decimal
    payment_frequency: Optional[str]
    commission: Decimal
