"""Admin withdrawal API endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import require_admin
from src.db import get_db
from src.models import Admin, AuditAction, WithdrawalStatus
from src.schemas.withdrawal import (
    AdminWithdrawalResponse,
    WithdrawalApprove,
    WithdrawalListResponse,
    WithdrawalReject,
    WithdrawalResponse,
    WithdrawalStatsResponse,
)
from src.services import withdrawals as withdrawal_service
from src.utils.audit import get_client_ip, log_action

router = APIRouter(prefix="/withdrawals")


@router.get("", response_model=WithdrawalListResponse)
async def list_withdrawals(
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
    status: Optional[WithdrawalStatus] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """List withdrawal requests, newest first."""
    items, total = await withdrawal_service.list_withdrawals(
        db,
        status=status,
        start_date=start_date,
        end_date=end_date,
        page=page,
        per_page=per_page,
    )

    return WithdrawalListResponse(
        items=[
            AdminWithdrawalResponse(
                **WithdrawalResponse.model_validate(w).model_dump(),
                agent_name=w.agent.full_name if w.agent else None,
                agent_email=w.agent.email if w.agent else None,
            )
            for w in items
        ],
        total=total,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page if total else 0,
    )


@router.get("/statistics", response_model=WithdrawalStatsResponse)
async def get_withdrawal_statistics(
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Count and total per status."""
    return await withdrawal_service.withdrawal_statistics(db)


@router.post("/{withdrawal_id}/approve", response_model=WithdrawalResponse)
async def approve_withdrawal(
    withdrawal_id: int,
    data: WithdrawalApprove,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Approve a pending withdrawal and debit the agent."""
    withdrawal = await withdrawal_service.approve_withdrawal(
        db,
        withdrawal_id,
        processed_by=current_admin.id,
        remarks=data.remarks,
    )

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.APPROVE_WITHDRAWAL,
        target_type="withdrawal",
        target_id=withdrawal.id,
        action_metadata={
            "agent_id": withdrawal.agent_id,
            "amount": str(withdrawal.amount),
            "transaction_reference": withdrawal.transaction_reference,
        },
        ip_address=get_client_ip(request),
    )

    return withdrawal


@router.post("/{withdrawal_id}/reject", response_model=WithdrawalResponse)
async def reject_withdrawal(
    withdrawal_id: int,
    data: WithdrawalReject,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: Admin = Depends(require_admin),
):
    """Reject a pending withdrawal. The balance is not touched."""
    withdrawal = await withdrawal_service.reject_withdrawal(
        db,
        withdrawal_id,
        processed_by=current_admin.id,
        reason=data.reason,
    )

    await log_action(
        db,
        admin_id=current_admin.id,
        action=AuditAction.REJECT_WITHDRAWAL,
        target_type="withdrawal",
        target_id=withdrawal.id,
        action_metadata={"agent_id": withdrawal.agent_id, "reason": data.reason},
        ip_address=get_client_ip(request),
    )

    return withdrawal
