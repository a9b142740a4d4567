"""
Withdrawal state machine.

Transitions:
- pending -> completed (approved by an admin; balance debited)
- pending -> failed (rejected by an admin; balance untouched)
- pending -> cancelled (withdrawn by the agent; balance untouched)

The balance is debited only at approval. Every transition is a
conditional UPDATE on status = 'pending', so a request can be processed
at most once even under concurrent admin actions.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.config import settings
from src.models import (
    ActorKind,
    ActorRef,
    Agent,
    WithdrawalRequest,
    WithdrawalStatus,
    WithdrawalType,
)
from src.models.base import utc_now
from src.services.errors import (
    AlreadyProcessed,
    AmountOutOfRange,
    BankDetailsMissing,
    InsufficientBalanceError,
    ValidationError,
    WithdrawalNotFound,
)
from src.services.ledger import atomic, debit, require_agent
from src.services.notifications import (
    WITHDRAWAL_APPROVED,
    WITHDRAWAL_REJECTED,
    NotificationSender,
    notify,
)
from src.utils.masking import mask_account_number

logger = logging.getLogger(__name__)

# Valid state transitions
WITHDRAWAL_TRANSITIONS: dict[WithdrawalStatus, set[WithdrawalStatus]] = {
    WithdrawalStatus.PENDING: {
        WithdrawalStatus.COMPLETED,
        WithdrawalStatus.FAILED,
        WithdrawalStatus.CANCELLED,
    },
    WithdrawalStatus.COMPLETED: set(),
    WithdrawalStatus.FAILED: set(),
    WithdrawalStatus.CANCELLED: set(),
}


def can_transition(current: WithdrawalStatus, target: WithdrawalStatus) -> bool:
    """Check if a status transition is allowed."""
    return target in WITHDRAWAL_TRANSITIONS.get(current, set())


def ensure_transition(withdrawal: WithdrawalRequest, target: WithdrawalStatus) -> None:
    """Raise AlreadyProcessed if the request cannot move to `target`."""
    if not can_transition(withdrawal.status, target):
        raise AlreadyProcessed(
            f"Withdrawal {withdrawal.id} is already {withdrawal.status.value}",
            current_state=_state_of(withdrawal),
        )


def _state_of(withdrawal: WithdrawalRequest) -> dict:
    return {
        "id": withdrawal.id,
        "status": withdrawal.status.value,
        "processed_date": withdrawal.processed_date.isoformat() if withdrawal.processed_date else None,
    }


def _to_amount(value) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("amount must be a number") from e
    if amount <= 0:
        raise ValidationError("amount must be positive")
    return amount


def _to_withdrawal_type(value) -> WithdrawalType:
    try:
        return WithdrawalType(value)
    except ValueError as e:
        raise ValidationError(
            f"Unknown withdrawal type '{value}'; expected one of "
            f"{', '.join(t.value for t in WithdrawalType)}"
        ) from e


async def get_withdrawal(
    db: AsyncSession,
    withdrawal_id: int,
    *,
    for_update: bool = False,
) -> WithdrawalRequest:
    """Load a withdrawal request or raise WithdrawalNotFound."""
    query = (
        select(WithdrawalRequest)
        .where(WithdrawalRequest.id == withdrawal_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    withdrawal = (await db.execute(query)).scalar_one_or_none()
    if withdrawal is None:
        raise WithdrawalNotFound(f"Withdrawal {withdrawal_id} not found")
    return withdrawal


async def _transition(
    db: AsyncSession,
    withdrawal: WithdrawalRequest,
    target: WithdrawalStatus,
    **values,
) -> None:
    """Move a pending request to `target`; the UPDATE only matches while still pending."""
    ensure_transition(withdrawal, target)
    result = await db.execute(
        update(WithdrawalRequest)
        .where(
            WithdrawalRequest.id == withdrawal.id,
            WithdrawalRequest.status == WithdrawalStatus.PENDING,
        )
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await get_withdrawal(db, withdrawal.id)
        raise AlreadyProcessed(
            f"Withdrawal {withdrawal.id} was processed concurrently",
            current_state=_state_of(current),
        )


# ── Agent operations ──────────────────────────────────────


async def request_withdrawal(
    db: AsyncSession,
    agent_id: int,
    amount,
    withdrawal_type=None,
) -> WithdrawalRequest:
    """
    Create a pending withdrawal request.

    The balance is checked but not debited; funds move at approval.

    Raises:
        AgentNotFound: no such agent
        BankDetailsMissing: agent has no verified bank details
        AmountOutOfRange: amount outside the agent's min/max settings
        InsufficientBalanceError: amount exceeds the current balance
    """
    amount = _to_amount(amount)

    async with atomic(db):
        agent = await require_agent(db, agent_id, for_update=True)

        if not agent.has_bank_details:
            raise BankDetailsMissing("Please add your bank details before requesting a withdrawal")

        if not agent.minimum_withdrawal_amount <= amount <= agent.maximum_withdrawal_amount:
            raise AmountOutOfRange(
                f"Withdrawal amount must be between {agent.minimum_withdrawal_amount} "
                f"and {agent.maximum_withdrawal_amount}",
                current_state={
                    "minimum": str(agent.minimum_withdrawal_amount),
                    "maximum": str(agent.maximum_withdrawal_amount),
                },
            )

        if amount > agent.commission_balance:
            raise InsufficientBalanceError(
                "Insufficient balance",
                current_state={"balance": str(agent.commission_balance)},
            )

        withdrawal = WithdrawalRequest(
            agent_id=agent.id,
            amount=amount,
            status=WithdrawalStatus.PENDING,
            withdrawal_type=(
                _to_withdrawal_type(withdrawal_type)
                if withdrawal_type is not None
                else agent.preferred_withdrawal_type
            ),
        )
        db.add(withdrawal)
        await db.flush()

    logger.info(
        f"Withdrawal {withdrawal.transaction_reference} requested by agent {agent_id}: {amount}"
    )
    return withdrawal


async def cancel_withdrawal(db: AsyncSession, agent_id: int, withdrawal_id: int) -> WithdrawalRequest:
    """Agent withdraws their own pending request. Balance is untouched."""
    async with atomic(db):
        withdrawal = await get_withdrawal(db, withdrawal_id, for_update=True)
        if withdrawal.agent_id != agent_id:
            raise WithdrawalNotFound(f"Withdrawal {withdrawal_id} not found")
        await _transition(
            db,
            withdrawal,
            WithdrawalStatus.CANCELLED,
            processed_date=utc_now(),
        )

    logger.info(f"Withdrawal {withdrawal_id} cancelled by agent {agent_id}")
    return await get_withdrawal(db, withdrawal_id)


async def update_withdrawal_settings(
    db: AsyncSession,
    agent_id: int,
    preferred_withdrawal_type,
) -> Agent:
    """Change the agent's preferred withdrawal type."""
    preferred = _to_withdrawal_type(preferred_withdrawal_type)
    async with atomic(db):
        agent = await require_agent(db, agent_id, for_update=True)
        agent.preferred_withdrawal_type = preferred
    return agent


async def withdrawal_status(db: AsyncSession, agent_id: int) -> dict:
    """Balance, settings, masked bank details and history of an agent."""
    agent = await require_agent(db, agent_id)
    result = await db.execute(
        select(WithdrawalRequest)
        .where(WithdrawalRequest.agent_id == agent_id)
        .order_by(WithdrawalRequest.request_date.desc(), WithdrawalRequest.id.desc())
        .execution_options(populate_existing=True)
    )
    return {
        "balance": agent.commission_balance,
        "total_earned": agent.commission_total_earned,
        "last_withdrawal_at": agent.last_withdrawal_at,
        "history": list(result.scalars().all()),
        "settings": {
            "minimum_withdrawal_amount": agent.minimum_withdrawal_amount,
            "maximum_withdrawal_amount": agent.maximum_withdrawal_amount,
            "preferred_withdrawal_type": agent.preferred_withdrawal_type,
        },
        "bank_details": {
            "bank_name": agent.bank_name,
            "account_number": mask_account_number(agent.account_number),
            "account_name": agent.account_name,
            "account_type": agent.account_type,
        } if agent.has_bank_details else None,
    }


# ── Admin operations ──────────────────────────────────────


async def approve_withdrawal(
    db: AsyncSession,
    withdrawal_id: int,
    processed_by: Optional[int] = None,
    remarks: Optional[str] = None,
    notifier: Optional[NotificationSender] = None,
) -> WithdrawalRequest:
    """
    Approve a pending request and debit the agent.

    Status claim and debit commit together; the notification goes out
    after the commit and cannot fail the approval.

    Raises:
        WithdrawalNotFound: no such request
        AlreadyProcessed: request is not pending
        InsufficientBalanceError: balance no longer covers the amount
    """
    now = utc_now()

    async with atomic(db):
        withdrawal = await get_withdrawal(db, withdrawal_id, for_update=True)
        await _transition(
            db,
            withdrawal,
            WithdrawalStatus.COMPLETED,
            processed_date=now,
            processed_by_id=processed_by,
            remarks=remarks,
        )
        await debit(db, ActorRef(kind=ActorKind.AGENT, id=withdrawal.agent_id), withdrawal.amount)
        await db.execute(
            update(Agent)
            .where(Agent.id == withdrawal.agent_id)
            .values(last_withdrawal_at=now)
            .execution_options(synchronize_session=False)
        )

    withdrawal = await get_withdrawal(db, withdrawal_id)
    logger.info(
        f"Withdrawal {withdrawal.transaction_reference} approved by admin {processed_by}: "
        f"{withdrawal.amount} debited from agent {withdrawal.agent_id}"
    )

    await notify(
        notifier,
        withdrawal.agent_id,
        ActorKind.AGENT.value,
        WITHDRAWAL_APPROVED,
        {
            "amount": str(withdrawal.amount),
            "transaction_reference": withdrawal.transaction_reference,
            "processed_date": now.isoformat(),
        },
    )
    return withdrawal


async def reject_withdrawal(
    db: AsyncSession,
    withdrawal_id: int,
    processed_by: Optional[int] = None,
    reason: Optional[str] = None,
    notifier: Optional[NotificationSender] = None,
) -> WithdrawalRequest:
    """
    Reject a pending request. Nothing was debited, so nothing is refunded.

    Raises:
        ValidationError: empty reason
        WithdrawalNotFound: no such request
        AlreadyProcessed: request is not pending
    """
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")

    now = utc_now()

    async with atomic(db):
        withdrawal = await get_withdrawal(db, withdrawal_id, for_update=True)
        await _transition(
            db,
            withdrawal,
            WithdrawalStatus.FAILED,
            processed_date=now,
            processed_by_id=processed_by,
            failure_reason=reason,
        )

    withdrawal = await get_withdrawal(db, withdrawal_id)
    logger.info(f"Withdrawal {withdrawal.transaction_reference} rejected by admin {processed_by}: {reason}")

    await notify(
        notifier,
        withdrawal.agent_id,
        ActorKind.AGENT.value,
        WITHDRAWAL_REJECTED,
        {
            "amount": str(withdrawal.amount),
            "transaction_reference": withdrawal.transaction_reference,
            "reason": reason,
        },
    )
    return withdrawal


async def list_withdrawals(
    db: AsyncSession,
    status: Optional[WithdrawalStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    per_page: Optional[int] = None,
    agent_id: Optional[int] = None,
) -> tuple[list[WithdrawalRequest], int]:
    """Filtered, paginated withdrawals (newest first) with the total count."""
    per_page = per_page or settings.default_page_size

    query = select(WithdrawalRequest).options(selectinload(WithdrawalRequest.agent))

    if status:
        query = query.where(WithdrawalRequest.status == status)
    if agent_id:
        query = query.where(WithdrawalRequest.agent_id == agent_id)
    if start_date:
        query = query.where(WithdrawalRequest.request_date >= start_date)
    if end_date:
        query = query.where(WithdrawalRequest.request_date <= end_date)

    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    query = query.order_by(WithdrawalRequest.request_date.desc(), WithdrawalRequest.id.desc())
    query = query.execution_options(populate_existing=True)
    query = query.offset((page - 1) * per_page).limit(per_page)

    result = await db.execute(query)
    return list(result.scalars().all()), total or 0


async def withdrawal_statistics(db: AsyncSession) -> dict:
    """Count and total amount per status, plus the amount awaiting approval."""
    result = await db.execute(
        select(
            WithdrawalRequest.status,
            func.count().label("count"),
            func.coalesce(func.sum(WithdrawalRequest.amount), Decimal("0")).label("total"),
        ).group_by(WithdrawalRequest.status)
    )
    by_status = {
        status.value: {"count": 0, "total": Decimal("0")}
        for status in WithdrawalStatus
    }
    for row in result.all():
        by_status[WithdrawalStatus(row.status).value] = {
            "count": row.count,
            "total": Decimal(str(row.total)),
        }

    return {
        "by_status": by_status,
        "pending_amount": by_status[WithdrawalStatus.PENDING.value]["total"],
    }
