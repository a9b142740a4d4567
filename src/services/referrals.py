"""
Referral graph: who referred whom, and what each referral has earned.

Every referrer keeps one ReferralEntry per referred actor. Transactions
append to the entry and credit the referrer in the same database
transaction, so the entry total, the transaction list, the balance and
the lifetime earnings always move together.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.models import (
    ACTOR_MODELS,
    ActorKind,
    ActorMixin,
    ActorRef,
    ReferralEntry,
    ReferralStatus,
    ReferralTransaction,
    WithdrawalRequest,
    generate_referral_code,
)
from src.services.errors import (
    ConflictError,
    NotFoundError,
    ReferredUserKindMismatch,
    ReferrerNotFound,
    TransientError,
    ValidationError,
)
from src.services.ledger import atomic, credit, get_actor

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTION_DESCRIPTION = "Commission earned"


def _as_ref(kind, actor_id: int) -> ActorRef:
    """Build a reference, rejecting kinds outside Landlord/Tenant/Agent."""
    try:
        return ActorRef(kind=kind, id=actor_id)
    except ValueError as e:
        raise ReferredUserKindMismatch(
            f"Unknown actor kind '{kind}'; expected one of "
            f"{', '.join(k.value for k in ActorKind)}"
        ) from e


async def _require_referrer(db: AsyncSession, referrer: ActorRef) -> ActorMixin:
    actor = await get_actor(db, referrer, for_update=True)
    if actor is None:
        raise ReferrerNotFound(f"Referrer {referrer} not found")
    return actor


async def _require_referred(db: AsyncSession, referrer: ActorRef, referred: ActorRef) -> ActorMixin:
    if referred == referrer:
        raise ValidationError("An actor cannot refer itself")
    actor = await get_actor(db, referred)
    if actor is None:
        raise ReferredUserKindMismatch(
            f"No {referred.kind.value} with id {referred.id}"
        )
    return actor


async def get_referral_entry(
    db: AsyncSession,
    referrer: ActorRef,
    referred: ActorRef,
    *,
    for_update: bool = False,
) -> Optional[ReferralEntry]:
    """Entry for (referrer, referred) with its transactions loaded, or None."""
    query = (
        select(ReferralEntry)
        .where(
            ReferralEntry.referrer_kind == referrer.kind,
            ReferralEntry.referrer_id == referrer.id,
            ReferralEntry.referred_kind == referred.kind,
            ReferralEntry.referred_id == referred.id,
        )
        .options(selectinload(ReferralEntry.transactions))
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _get_or_create_entry(
    db: AsyncSession,
    referrer: ActorRef,
    referred: ActorRef,
) -> ReferralEntry:
    entry = await get_referral_entry(db, referrer, referred, for_update=True)
    if entry is not None:
        return entry

    entry = ReferralEntry(
        referrer_kind=referrer.kind,
        referrer_id=referrer.id,
        referred_kind=referred.kind,
        referred_id=referred.id,
        commission=Decimal("0"),
        status=ReferralStatus.PENDING,
        is_paid=False,
        transactions=[],
    )
    db.add(entry)
    try:
        await db.flush()
    except IntegrityError as e:
        # Another request created the same pair first
        raise TransientError(
            f"Referral entry for {referrer} -> {referred} was created concurrently; retry"
        ) from e
    logger.info(f"Referral recorded: {referrer} -> {referred}")
    return entry


async def record_referral(
    db: AsyncSession,
    referrer: ActorRef,
    referred_id: int,
    referred_kind,
) -> ReferralEntry:
    """
    Record that `referrer` referred an actor.

    Idempotent: an existing entry for the referred actor is returned as is.

    Raises:
        ReferrerNotFound: referrer does not exist
        ReferredUserKindMismatch: unknown kind, or no actor of that kind with that id
    """
    referred = _as_ref(referred_kind, referred_id)
    async with atomic(db):
        await _require_referrer(db, referrer)
        await _require_referred(db, referrer, referred)
        entry = await _get_or_create_entry(db, referrer, referred)
    return entry


async def add_transaction(
    db: AsyncSession,
    referrer: ActorRef,
    referred: ActorRef,
    amount,
    commission,
    description: Optional[str] = None,
) -> ReferralEntry:
    """
    Credit a referrer for a revenue event of a referred actor.

    In one transaction: locate or create the entry, append a completed
    transaction, grow the entry's commission, credit the referrer's
    balance and lifetime earnings, and mark the entry completed.

    Returns:
        The entry, reloaded with its transactions
    """
    amount = Decimal(str(amount))
    commission = Decimal(str(commission))
    if amount <= 0:
        raise ValidationError("Transaction amount must be positive")
    if commission < 0:
        raise ValidationError("Commission must not be negative")

    referred = _as_ref(referred.kind, referred.id)

    async with atomic(db):
        await _require_referrer(db, referrer)
        await _require_referred(db, referrer, referred)
        entry = await _get_or_create_entry(db, referrer, referred)

        db.add(
            ReferralTransaction(
                entry_id=entry.id,
                amount=amount,
                commission=commission,
                description=description or DEFAULT_TRANSACTION_DESCRIPTION,
                status=ReferralStatus.COMPLETED,
            )
        )
        await db.execute(
            update(ReferralEntry)
            .where(ReferralEntry.id == entry.id)
            .values(
                commission=ReferralEntry.commission + commission,
                status=ReferralStatus.COMPLETED,
            )
            .execution_options(synchronize_session=False)
        )
        await credit(db, referrer, commission)
        await db.flush()

    logger.info(
        f"Referral commission {commission} on {amount} credited to {referrer} "
        f"(referred {referred})"
    )
    return await get_referral_entry(db, referrer, referred)


async def settle_referral(
    db: AsyncSession,
    referrer: ActorRef,
    referred: ActorRef,
) -> ReferralEntry:
    """
    Mark a referral entry as paid out.

    The balance was credited when the transactions were recorded, so
    only is_paid / paid_at change. Settling a paid entry is a no-op.

    Raises:
        NotFoundError: no entry for this pair
    """
    async with atomic(db):
        entry = await get_referral_entry(db, referrer, referred, for_update=True)
        if entry is None:
            raise NotFoundError(f"No referral entry for {referrer} -> {referred}")
        if not entry.is_paid:
            entry.is_paid = True
            entry.paid_at = datetime.now(timezone.utc)
            logger.info(f"Referral {referrer} -> {referred} settled")
    return entry


async def ensure_referral_code(db: AsyncSession, actor_ref: ActorRef) -> str:
    """Return the actor's referral code, generating one only if it has none."""
    async with atomic(db):
        actor = await get_actor(db, actor_ref, for_update=True)
        if actor is None:
            raise NotFoundError(f"Actor {actor_ref} not found")
        if not actor.referral_code:
            actor.referral_code = generate_referral_code(actor_ref.kind)
    return actor.referral_code


async def find_by_referral_code(db: AsyncSession, code: str) -> Optional[ActorMixin]:
    """Look the code up across every actor kind."""
    code = code.strip().upper()
    for model in ACTOR_MODELS.values():
        actor = await db.scalar(select(model).where(model.referral_code == code))
        if actor is not None:
            return actor
    return None


async def apply_referral_code(db: AsyncSession, actor_ref: ActorRef, code: str) -> ReferralEntry:
    """
    Attach a referrer to an actor using the referrer's code.

    Sets referred_by once and records the referral entry on the referrer,
    both in one transaction.

    Raises:
        NotFoundError: unknown code or actor
        ConflictError: the actor already has a referrer
        ValidationError: the code belongs to the actor itself
    """
    async with atomic(db):
        actor = await get_actor(db, actor_ref, for_update=True)
        if actor is None:
            raise NotFoundError(f"Actor {actor_ref} not found")
        if actor.referred_by is not None:
            raise ConflictError(
                "Referrer already set",
                current_state={"referred_by": str(actor.referred_by)},
            )

        referrer_actor = await find_by_referral_code(db, code)
        if referrer_actor is None:
            raise NotFoundError("Invalid referral code")
        referrer = referrer_actor.ref
        await _require_referrer(db, referrer)
        await _require_referred(db, referrer, actor_ref)

        actor.referred_by_kind = referrer.kind
        actor.referred_by_id = referrer.id
        entry = await _get_or_create_entry(db, referrer, actor_ref)

    logger.info(f"{actor_ref} joined with referral code of {referrer}")
    return entry


@dataclass
class ReferralSummary:
    """Referral view of one actor."""

    actor: ActorRef
    first_name: str
    last_name: str
    referral_code: str
    balance: Decimal
    total_earned: Decimal
    referred_by: Optional[ActorRef]
    entries: list[dict] = field(default_factory=list)
    withdrawals: list[WithdrawalRequest] = field(default_factory=list)


async def _referred_names(db: AsyncSession, entries: list[ReferralEntry]) -> dict[ActorRef, ActorMixin]:
    """Resolve referred actors kind by kind through the dispatch table."""
    resolved: dict[ActorRef, ActorMixin] = {}
    by_kind: dict[ActorKind, set[int]] = {}
    for entry in entries:
        by_kind.setdefault(entry.referred_kind, set()).add(entry.referred_id)

    for kind, ids in by_kind.items():
        model = ACTOR_MODELS[kind]
        result = await db.execute(select(model).where(model.id.in_(ids)))
        for actor in result.scalars().all():
            resolved[actor.ref] = actor
    return resolved


async def get_referral_summary(db: AsyncSession, actor_ref: ActorRef) -> ReferralSummary:
    """Code, ledger totals and referral history of an actor."""
    actor = await get_actor(db, actor_ref)
    if actor is None:
        raise NotFoundError(f"Actor {actor_ref} not found")

    result = await db.execute(
        select(ReferralEntry)
        .where(
            ReferralEntry.referrer_kind == actor_ref.kind,
            ReferralEntry.referrer_id == actor_ref.id,
        )
        .options(selectinload(ReferralEntry.transactions))
        .order_by(ReferralEntry.created_at, ReferralEntry.id)
        .execution_options(populate_existing=True)
    )
    entries = list(result.scalars().all())
    referred = await _referred_names(db, entries)

    summary = ReferralSummary(
        actor=actor_ref,
        first_name=actor.first_name,
        last_name=actor.last_name,
        referral_code=actor.referral_code,
        balance=actor.commission_balance,
        total_earned=actor.commission_total_earned,
        referred_by=actor.referred_by,
    )
    for entry in entries:
        user = referred.get(entry.referred)
        summary.entries.append({
            "entry": entry,
            "referred_user": {
                "id": user.id,
                "kind": user.kind.value,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "email": user.email,
            } if user else None,
        })

    if actor_ref.kind == ActorKind.AGENT:
        withdrawals = await db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.agent_id == actor_ref.id)
            .order_by(WithdrawalRequest.request_date.desc())
            .execution_options(populate_existing=True)
        )
        summary.withdrawals = list(withdrawals.scalars().all())

    return summary

