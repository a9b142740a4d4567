"""Agent panel withdrawal API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import require_agent
from src.db import get_db
from src.models import ActorRef
from src.schemas.withdrawal import (
    WithdrawalCreate,
    WithdrawalResponse,
    WithdrawalSettingsResponse,
    WithdrawalSettingsUpdate,
    WithdrawalStatusResponse,
)
from src.services import withdrawals as withdrawal_service

router = APIRouter(prefix="/withdrawals")


@router.get("/status", response_model=WithdrawalStatusResponse)
async def get_withdrawal_status(
    db: AsyncSession = Depends(get_db),
    agent: ActorRef = Depends(require_agent),
):
    """Balance, settings, bank details and withdrawal history."""
    return await withdrawal_service.withdrawal_status(db, agent.id)


@router.post("", response_model=WithdrawalResponse, status_code=201)
async def request_withdrawal(
    data: WithdrawalCreate,
    db: AsyncSession = Depends(get_db),
    agent: ActorRef = Depends(require_agent),
):
    """Request a withdrawal; funds are debited when an admin approves it."""
    return await withdrawal_service.request_withdrawal(
        db,
        agent.id,
        data.amount,
        data.withdrawal_type,
    )


@router.post("/{withdrawal_id}/cancel", response_model=WithdrawalResponse)
async def cancel_withdrawal(
    withdrawal_id: int,
    db: AsyncSession = Depends(get_db),
    agent: ActorRef = Depends(require_agent),
):
    """Cancel one of your pending withdrawals."""
    return await withdrawal_service.cancel_withdrawal(db, agent.id, withdrawal_id)


@router.put("/settings", response_model=WithdrawalSettingsResponse)
async def update_withdrawal_settings(
    data: WithdrawalSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    agent: ActorRef = Depends(require_agent),
):
    """Change the preferred withdrawal type."""
    updated = await withdrawal_service.update_withdrawal_settings(
        db,
        agent.id,
        data.preferred_withdrawal_type,
    )
    return WithdrawalSettingsResponse(
        minimum_withdrawal_amount=updated.minimum_withdrawal_amount,
        maximum_withdrawal_amount=updated.maximum_withdrawal_amount,
        preferred_withdrawal_type=updated.preferred_withdrawal_type,
    )
