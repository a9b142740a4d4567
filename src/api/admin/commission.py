"""Admin commission configuration API endpoints."""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import require_admin
from src.db import get_db
from src.models import Admin, AuditAction
from src.schemas.commission import (
    CommissionConfigCreate,
    CommissionConfigResponse,
    CommissionQuoteResponse,
)
from src.services import commission as commission_service
from src.utils.audit import get_client_ip, log_action

router = APIRouter(prefix="/commission")


@router.get("/configs", response_model=List[CommissionConfigResponse])
async def list_configs(
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """All commission configs, newest first."""
    return await commission_service.list_commission_configs(db)


@router.post("/configs", response_model=CommissionConfigResponse, status_code=201)
async def create_config(
    data: CommissionConfigCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Create a config; when activated it replaces the current one."""
    config = await commission_service.create_commission_config(
        db,
        base_rate=data.base_rate,
        tier_rates=[
            commission_service.TierRateSpec(
                min_amount=t.min_amount,
                max_amount=t.max_amount,
                rate=t.rate,
            )
            for t in data.tier_rates
        ],
        frequency_multipliers=data.frequency_multipliers,
        effective_date=data.effective_date,
        activate=data.activate,
    )

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.CREATE_COMMISSION_CONFIG,
        target_type="commission_config",
        target_id=config.id,
        action_metadata={"base_rate": str(config.base_rate), "active": data.activate},
        ip_address=get_client_ip(request),
    )

    return config


@router.post("/configs/{config_id}/deactivate", response_model=CommissionConfigResponse)
async def deactivate_config(
    config_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Deactivate a config."""
    config = await commission_service.deactivate_commission_config(db, config_id)

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.DEACTIVATE_COMMISSION_CONFIG,
        target_type="commission_config",
        target_id=config_id,
        ip_address=get_client_ip(request),
    )

    return config


@router.get("/quote", response_model=CommissionQuoteResponse)
async def quote_commission(
    base_amount: Decimal = Query(..., gt=0),
    payment_frequency: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Commission a base amount would earn under the active config."""
    commission = await commission_service.calculate_commission(db, base_amount, payment_frequency)
    return CommissionQuoteResponse(
        base_amount=base_amount,
        payment_frequency=payment_frequency,
        commission=commission,
    )
