"""
Tests for the withdrawal state machine.

Covers:
- Request validation (bank details, min/max, balance, type)
- Approval debits exactly once; repeated processing is a conflict
- Rejection and cancellation leave the balance untouched
- Notifications are best effort
- Listing, statistics and the agent status view
"""

from decimal import Decimal

import pytest

from src.models import WithdrawalStatus, WithdrawalType
from src.services.errors import (
    AlreadyProcessed,
    AmountOutOfRange,
    BankDetailsMissing,
    ConflictError,
    InsufficientBalanceError,
    ValidationError,
    WithdrawalNotFound,
)
from src.services.ledger import get_snapshot
from src.services.notifications import WITHDRAWAL_APPROVED, WITHDRAWAL_REJECTED
from src.services.withdrawals import (
    WITHDRAWAL_TRANSITIONS,
    approve_withdrawal,
    can_transition,
    cancel_withdrawal,
    get_withdrawal,
    list_withdrawals,
    reject_withdrawal,
    request_withdrawal,
    update_withdrawal_settings,
    withdrawal_status,
    withdrawal_statistics,
)


@pytest.fixture
def limits():
    return {
        "minimum_withdrawal_amount": Decimal("1000"),
        "maximum_withdrawal_amount": Decimal("1000000"),
    }


# ── State machine ─────────────────────────────────────────


class TestTransitions:
    def test_pending_can_move_to_every_final_state(self):
        for target in (WithdrawalStatus.COMPLETED, WithdrawalStatus.FAILED, WithdrawalStatus.CANCELLED):
            assert can_transition(WithdrawalStatus.PENDING, target)

    def test_final_states_are_terminal(self):
        for status in (WithdrawalStatus.COMPLETED, WithdrawalStatus.FAILED, WithdrawalStatus.CANCELLED):
            assert WITHDRAWAL_TRANSITIONS[status] == set()
            for target in WithdrawalStatus:
                assert not can_transition(status, target)

    def test_pending_to_pending_not_allowed(self):
        assert not can_transition(WithdrawalStatus.PENDING, WithdrawalStatus.PENDING)


# ── Requests ──────────────────────────────────────────────


class TestRequestWithdrawal:
    @pytest.mark.asyncio
    async def test_request_creates_pending_without_debit(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)

        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("15000"))

        assert withdrawal.status == WithdrawalStatus.PENDING
        assert withdrawal.amount == Decimal("15000")
        assert withdrawal.withdrawal_type == WithdrawalType.PARTIAL
        assert withdrawal.transaction_reference.startswith("WTH")
        snapshot = await get_snapshot(db_session, agent.ref)
        assert snapshot.balance == Decimal("20000")

    @pytest.mark.asyncio
    async def test_maximum_is_inclusive(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("2000000"), **limits)
        agent_id = agent.id

        withdrawal = await request_withdrawal(db_session, agent_id, Decimal("1000000"))
        assert withdrawal.status == WithdrawalStatus.PENDING

        with pytest.raises(AmountOutOfRange) as exc:
            await request_withdrawal(db_session, agent_id, Decimal("1000000.01"))
        assert Decimal(exc.value.current_state["maximum"]) == Decimal("1000000")

    @pytest.mark.asyncio
    async def test_below_minimum(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        with pytest.raises(AmountOutOfRange):
            await request_withdrawal(db_session, agent.id, Decimal("999.99"))

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("5000"), **limits)
        with pytest.raises(InsufficientBalanceError):
            await request_withdrawal(db_session, agent.id, Decimal("5000.01"))

    @pytest.mark.asyncio
    async def test_bank_details_required(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), bank_name=None, **limits)
        with pytest.raises(BankDetailsMissing):
            await request_withdrawal(db_session, agent.id, Decimal("5000"))

    @pytest.mark.asyncio
    async def test_malformed_account_number_counts_as_missing(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), account_number="12345", **limits)
        with pytest.raises(BankDetailsMissing):
            await request_withdrawal(db_session, agent.id, Decimal("5000"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-10", "ten"])
    async def test_invalid_amount(self, db_session, make_agent, amount):
        agent = await make_agent(balance=Decimal("20000"))
        with pytest.raises(ValidationError):
            await request_withdrawal(db_session, agent.id, amount)

    @pytest.mark.asyncio
    async def test_explicit_type(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("2000"), "quarterly")
        assert withdrawal.withdrawal_type == WithdrawalType.QUARTERLY

    @pytest.mark.asyncio
    async def test_unknown_type(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        with pytest.raises(ValidationError):
            await request_withdrawal(db_session, agent.id, Decimal("2000"), "weekly")

    @pytest.mark.asyncio
    async def test_preferred_type_is_default(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        await update_withdrawal_settings(db_session, agent.id, "annual")

        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("2000"))
        assert withdrawal.withdrawal_type == WithdrawalType.ANNUAL


# ── Approval ──────────────────────────────────────────────


class TestApproveWithdrawal:
    @pytest.mark.asyncio
    async def test_approve_debits_once(self, db_session, make_agent, admin, limits, sent_notifications):
        """Balance 20000, request 15000, approve: 5000 left; approving again conflicts."""
        agent = await make_agent(balance=Decimal("20000"), **limits)
        agent_ref = agent.ref
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("15000"))
        withdrawal_id = withdrawal.id

        approved = await approve_withdrawal(db_session, withdrawal_id, processed_by=admin.id, remarks="Paid")

        assert approved.status == WithdrawalStatus.COMPLETED
        assert approved.processed_date is not None
        assert approved.processed_by_id == admin.id
        assert approved.remarks == "Paid"
        snapshot = await get_snapshot(db_session, agent_ref)
        assert snapshot.balance == Decimal("5000")
        assert snapshot.total_earned == Decimal("20000")

        with pytest.raises(ConflictError) as exc:
            await approve_withdrawal(db_session, withdrawal_id, processed_by=admin.id)
        assert isinstance(exc.value, AlreadyProcessed)
        assert exc.value.current_state["status"] == "completed"

        snapshot = await get_snapshot(db_session, agent_ref)
        assert snapshot.balance == Decimal("5000")
        assert len(sent_notifications.sent) == 1

    @pytest.mark.asyncio
    async def test_approve_notifies_agent(self, db_session, make_agent, limits, sent_notifications):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("3000"))

        await approve_withdrawal(db_session, withdrawal.id)

        recipient_id, kind, template_id, data = sent_notifications.sent[0]
        assert recipient_id == agent.id
        assert kind == "agent"
        assert template_id == WITHDRAWAL_APPROVED
        assert Decimal(data["amount"]) == Decimal("3000")
        assert data["transaction_reference"] == withdrawal.transaction_reference

    @pytest.mark.asyncio
    async def test_approve_sets_last_withdrawal(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("3000"))

        await approve_withdrawal(db_session, withdrawal.id)

        status = await withdrawal_status(db_session, agent.id)
        assert status["last_withdrawal_at"] is not None

    @pytest.mark.asyncio
    async def test_failed_notification_does_not_fail_approval(self, db_session, make_agent, limits, failing_sender):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("3000"))

        approved = await approve_withdrawal(db_session, withdrawal.id, notifier=failing_sender)

        assert approved.status == WithdrawalStatus.COMPLETED
        snapshot = await get_snapshot(db_session, agent.ref)
        assert snapshot.balance == Decimal("17000")

    @pytest.mark.asyncio
    async def test_balance_rechecked_at_approval(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        agent_ref = agent.ref
        first = await request_withdrawal(db_session, agent.id, Decimal("15000"))
        second = await request_withdrawal(db_session, agent.id, Decimal("15000"))
        first_id, second_id = first.id, second.id

        await approve_withdrawal(db_session, first_id)
        with pytest.raises(InsufficientBalanceError):
            await approve_withdrawal(db_session, second_id)

        still_pending = await get_withdrawal(db_session, second_id)
        assert still_pending.status == WithdrawalStatus.PENDING
        snapshot = await get_snapshot(db_session, agent_ref)
        assert snapshot.balance == Decimal("5000")

    @pytest.mark.asyncio
    async def test_approve_missing(self, db_session):
        with pytest.raises(WithdrawalNotFound):
            await approve_withdrawal(db_session, 999)


# ── Rejection and cancellation ───────────────────────────


class TestRejectAndCancel:
    @pytest.mark.asyncio
    async def test_reject_keeps_balance(self, db_session, make_agent, admin, limits, sent_notifications):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("15000"))

        rejected = await reject_withdrawal(
            db_session, withdrawal.id, processed_by=admin.id, reason="Account name mismatch"
        )

        assert rejected.status == WithdrawalStatus.FAILED
        assert rejected.failure_reason == "Account name mismatch"
        snapshot = await get_snapshot(db_session, agent.ref)
        assert snapshot.balance == Decimal("20000")
        assert sent_notifications.sent[0][2] == WITHDRAWAL_REJECTED
        assert sent_notifications.sent[0][3]["reason"] == "Account name mismatch"

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("15000"))

        with pytest.raises(ValidationError):
            await reject_withdrawal(db_session, withdrawal.id, reason="   ")

    @pytest.mark.asyncio
    async def test_cannot_approve_after_reject(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        agent_ref = agent.ref
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("15000"))
        withdrawal_id = withdrawal.id
        await reject_withdrawal(db_session, withdrawal_id, reason="Duplicate")

        with pytest.raises(AlreadyProcessed):
            await approve_withdrawal(db_session, withdrawal_id)

        snapshot = await get_snapshot(db_session, agent_ref)
        assert snapshot.balance == Decimal("20000")

    @pytest.mark.asyncio
    async def test_agent_cancels_own_request(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        withdrawal = await request_withdrawal(db_session, agent.id, Decimal("15000"))

        cancelled = await cancel_withdrawal(db_session, agent.id, withdrawal.id)

        assert cancelled.status == WithdrawalStatus.CANCELLED
        snapshot = await get_snapshot(db_session, agent.ref)
        assert snapshot.balance == Decimal("20000")

    @pytest.mark.asyncio
    async def test_cannot_cancel_another_agents_request(self, db_session, make_agent, limits):
        owner = await make_agent(balance=Decimal("20000"), **limits)
        other = await make_agent(**limits)
        withdrawal = await request_withdrawal(db_session, owner.id, Decimal("15000"))

        with pytest.raises(WithdrawalNotFound):
            await cancel_withdrawal(db_session, other.id, withdrawal.id)

    @pytest.mark.asyncio
    async def test_cannot_cancel_processed_request(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        agent_id = agent.id
        withdrawal = await request_withdrawal(db_session, agent_id, Decimal("15000"))
        withdrawal_id = withdrawal.id
        await approve_withdrawal(db_session, withdrawal_id)

        with pytest.raises(AlreadyProcessed):
            await cancel_withdrawal(db_session, agent_id, withdrawal_id)


# ── Views ─────────────────────────────────────────────────


class TestWithdrawalViews:
    @pytest.mark.asyncio
    async def test_list_filters_and_paginates(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("50000"), **limits)
        ids = []
        for amount in ("1000", "2000", "3000"):
            withdrawal = await request_withdrawal(db_session, agent.id, Decimal(amount))
            ids.append(withdrawal.id)
        await reject_withdrawal(db_session, ids[0], reason="Test")

        pending, total = await list_withdrawals(db_session, status=WithdrawalStatus.PENDING)
        assert total == 2
        assert {w.id for w in pending} == set(ids[1:])

        page, total = await list_withdrawals(db_session, page=2, per_page=2)
        assert total == 3
        assert len(page) == 1

        everything, _ = await list_withdrawals(db_session, agent_id=agent.id)
        assert all(w.agent.email == agent.email for w in everything)

    @pytest.mark.asyncio
    async def test_statistics(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("50000"), **limits)
        first = await request_withdrawal(db_session, agent.id, Decimal("10000"))
        await request_withdrawal(db_session, agent.id, Decimal("2500"))
        await approve_withdrawal(db_session, first.id)

        stats = await withdrawal_statistics(db_session)

        assert stats["by_status"]["completed"] == {"count": 1, "total": Decimal("10000")}
        assert stats["by_status"]["pending"]["count"] == 1
        assert stats["pending_amount"] == Decimal("2500")
        assert stats["by_status"]["failed"] == {"count": 0, "total": Decimal("0")}

    @pytest.mark.asyncio
    async def test_status_masks_account_number(self, db_session, make_agent, limits):
        agent = await make_agent(balance=Decimal("20000"), **limits)
        await request_withdrawal(db_session, agent.id, Decimal("1000"))

        status = await withdrawal_status(db_session, agent.id)

        assert status["balance"] == Decimal("20000")
        assert status["bank_details"]["account_number"] == "******6789"
        assert len(status["history"]) == 1
        assert status["settings"]["minimum_withdrawal_amount"] == Decimal("1000")

    @pytest.mark.asyncio
    async def test_status_without_bank_details(self, db_session, make_agent):
        agent = await make_agent(bank_name=None, account_number=None, account_name=None)
        status = await withdrawal_status(db_session, agent.id)
        assert status["bank_details"] is None
        assert status["history"] == []

    @pytest.mark.asyncio
    async def test_update_settings_rejects_unknown_type(self, db_session, make_agent):
        agent = await make_agent()
        with pytest.raises(ValidationError):
            await update_withdrawal_settings(db_session, agent.id, "monthly")
