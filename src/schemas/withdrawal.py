"""Withdrawal schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.models.actor import BankAccountType, WithdrawalType
from src.models.withdrawal import WithdrawalStatus


class WithdrawalCreate(BaseModel):
    """Agent withdrawal request."""

    amount: Decimal = Field(..., gt=0)
    withdrawal_type: Optional[WithdrawalType] = None


class WithdrawalApprove(BaseModel):
    remarks: Optional[str] = Field(None, max_length=1000)


class WithdrawalReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class WithdrawalSettingsUpdate(BaseModel):
    preferred_withdrawal_type: WithdrawalType


class WithdrawalResponse(BaseModel):
    """Withdrawal request."""

    id: int
    agent_id: int
    amount: Decimal
    status: WithdrawalStatus
    withdrawal_type: WithdrawalType
    transaction_reference: str
    request_date: datetime
    processed_date: Optional[datetime]
    processed_by_id: Optional[int]
    remarks: Optional[str]
    failure_reason: Optional[str]

    model_config = {"from_attributes": True}


class AdminWithdrawalResponse(WithdrawalResponse):
    """Withdrawal with the requesting agent's name for the admin list."""

    agent_name: Optional[str] = None
    agent_email: Optional[str] = None


class WithdrawalListResponse(BaseModel):
    """Paginated list of withdrawals."""

    items: List[AdminWithdrawalResponse]
    total: int
    page: int
    per_page: int
    pages: int


class StatusTotals(BaseModel):
    count: int
    total: Decimal


class WithdrawalStatsResponse(BaseModel):
    """Withdrawal statistics."""

    by_status: Dict[str, StatusTotals]
    pending_amount: Decimal


class WithdrawalSettingsResponse(BaseModel):
    minimum_withdrawal_amount: Decimal
    maximum_withdrawal_amount: Decimal
    preferred_withdrawal_type: WithdrawalType


class BankDetailsResponse(BaseModel):
    """Bank details with the account number masked."""

    bank_name: Optional[str]
    account_number: Optional[str]
    account_name: Optional[str]
    account_type: Optional[BankAccountType]


class WithdrawalStatusResponse(BaseModel):
    """Agent's withdrawal overview."""

    balance: Decimal
    total_earned: Decimal
    last_withdrawal_at: Optional[datetime]
    history: List[WithdrawalResponse]
    settings: WithdrawalSettingsResponse
    bank_details: Optional[BankDetailsResponse]
