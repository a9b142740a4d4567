"""
Ledger primitives shared by the referral and withdrawal services.

Balances are only ever changed with single UPDATE statements
(`balance = balance + :x`), so concurrent credits and debits against
the same actor serialize in the database instead of in application
memory. Debits are conditional on the balance covering the amount.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncGenerator, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import ActorMixin, ActorRef, Agent, actor_model
from src.services.errors import (
    ActorNotFound,
    AgentNotFound,
    InsufficientBalanceError,
    ValidationError,
    storage_errors,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[None, None]:
    """
    Run a ledger operation as one unit of work.

    Everything flushed inside the block is committed together; any
    failure rolls the whole transaction back so no partial ledger
    update is ever visible.
    """
    try:
        async with storage_errors():
            yield
            await db.commit()
    except Exception:
        await db.rollback()
        raise


@dataclass(frozen=True)
class LedgerSnapshot:
    """Balance view of one actor."""

    actor: ActorRef
    balance: Decimal
    total_earned: Decimal


async def get_actor(
    db: AsyncSession,
    ref: ActorRef,
    *,
    for_update: bool = False,
) -> Optional[ActorMixin]:
    """
    Load the actor a reference points at.

    With for_update=True the row is locked (SELECT ... FOR UPDATE) until
    the surrounding transaction ends.
    """
    model = actor_model(ref.kind)
    query = select(model).where(model.id == ref.id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def require_agent(
    db: AsyncSession,
    agent_id: int,
    *,
    for_update: bool = False,
) -> Agent:
    """Load an agent or raise AgentNotFound."""
    agent = await get_actor(db, ActorRef(kind=Agent.kind, id=agent_id), for_update=for_update)
    if agent is None:
        raise AgentNotFound(f"Agent {agent_id} not found")
    return agent


async def credit(db: AsyncSession, ref: ActorRef, amount: Decimal) -> None:
    """
    Add earnings to an actor: balance and total earned grow together.

    Raises:
        ValidationError: amount is negative
        ActorNotFound: no such actor
    """
    if amount < 0:
        raise ValidationError("Credit amount must not be negative")

    model = actor_model(ref.kind)
    result = await db.execute(
        update(model)
        .where(model.id == ref.id)
        .values(
            commission_balance=model.commission_balance + amount,
            commission_total_earned=model.commission_total_earned + amount,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ActorNotFound(f"Actor {ref} not found")
    logger.debug(f"Credited {amount} to {ref}")


async def debit(db: AsyncSession, ref: ActorRef, amount: Decimal) -> None:
    """
    Remove funds from an actor's balance (total earned is untouched).

    The UPDATE only matches when the balance covers the amount, so two
    concurrent debits can never take the balance below zero.

    Raises:
        ValidationError: amount is not positive
        ActorNotFound: no such actor
        InsufficientBalanceError: balance is lower than amount
    """
    if amount <= 0:
        raise ValidationError("Debit amount must be positive")

    model = actor_model(ref.kind)
    result = await db.execute(
        update(model)
        .where(
            model.id == ref.id,
            model.commission_balance >= amount,
        )
        .values(commission_balance=model.commission_balance - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await get_actor(db, ref)
        if current is None:
            raise ActorNotFound(f"Actor {ref} not found")
        raise InsufficientBalanceError(
            f"Insufficient balance for debit of {amount}",
            current_state={"balance": str(current.commission_balance)},
        )
    logger.debug(f"Debited {amount} from {ref}")


async def get_snapshot(db: AsyncSession, ref: ActorRef) -> Optional[LedgerSnapshot]:
    """Current balance and lifetime earnings, or None if the actor is missing."""
    actor = await get_actor(db, ref)
    if actor is None:
        return None
    return LedgerSnapshot(
        actor=ref,
        balance=actor.commission_balance,
        total_earned=actor.commission_total_earned,
    )
