"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum types shared between tables are created once, up front
ACTOR_KIND = postgresql.ENUM("agent", "landlord", "tenant", name="actorkind", create_type=False)
ACTOR_STATUS = postgresql.ENUM("active", "suspended", name="actorstatus", create_type=False)
WITHDRAWAL_TYPE = postgresql.ENUM(
    "partial", "quarterly", "biannual", "annual", name="withdrawaltype", create_type=False
)
BANK_ACCOUNT_TYPE = postgresql.ENUM("savings", "current", name="bankaccounttype", create_type=False)
REFERRAL_STATUS = postgresql.ENUM("pending", "completed", name="referralstatus", create_type=False)
WITHDRAWAL_STATUS = postgresql.ENUM(
    "pending", "completed", "failed", "cancelled", name="withdrawalstatus", create_type=False
)
CONFIG_STATUS = postgresql.ENUM("active", "inactive", name="commissionconfigstatus", create_type=False)
AUDIT_ACTION = postgresql.ENUM(
    "approve_withdrawal",
    "reject_withdrawal",
    "create_tier",
    "update_tier",
    "delete_tier",
    "reorder_tiers",
    "create_commission_config",
    "deactivate_commission_config",
    name="auditaction",
    create_type=False,
)

ENUMS = (
    ACTOR_KIND,
    ACTOR_STATUS,
    WITHDRAWAL_TYPE,
    BANK_ACCOUNT_TYPE,
    REFERRAL_STATUS,
    WITHDRAWAL_STATUS,
    CONFIG_STATUS,
    AUDIT_ACTION,
)


def _table_exists(table: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return table in insp.get_table_names()


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _actor_columns(table: str) -> list:
    """Columns and constraints shared by agents, landlords and tenants."""
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("status", ACTOR_STATUS, server_default="active", nullable=False),
        sa.Column("referral_code", sa.String(20), nullable=False),
        sa.Column("referred_by_kind", ACTOR_KIND, nullable=True),
        sa.Column("referred_by_id", sa.Integer(), nullable=True),
        sa.Column("commission_balance", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("commission_total_earned", sa.Numeric(14, 2), server_default="0", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("commission_balance >= 0", name=f"ck_{table}_balance_non_negative"),
        sa.CheckConstraint(
            "commission_balance <= commission_total_earned",
            name=f"ck_{table}_balance_within_earnings",
        ),
    ]


def _actor_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_email", table, ["email"], unique=True)
    op.create_index(f"ix_{table}_referral_code", table, ["referral_code"], unique=True)
    op.create_index(f"ix_{table}_status", table, ["status"])
    op.create_index(f"ix_{table}_referred_by_id", table, ["referred_by_id"])
    op.create_index(f"ix_{table}_commission_total_earned", table, ["commission_total_earned"])


def upgrade() -> None:
    """Create all ledger tables."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    # Admins
    if not _table_exists("admins"):
        op.create_table(
            "admins",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("username", sa.String(100), nullable=False),
            sa.Column("display_name", sa.String(100), nullable=False),
            sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
            *_timestamps(),
        )
        op.create_index("ix_admins_username", "admins", ["username"], unique=True)

    # Agents
    if not _table_exists("agents"):
        op.create_table(
            "agents",
            *_actor_columns("agents"),
            sa.Column("business_name", sa.String(200), nullable=True),
            sa.Column("bank_name", sa.String(100), nullable=True),
            sa.Column("account_number", sa.String(10), nullable=True),
            sa.Column("account_name", sa.String(200), nullable=True),
            sa.Column("account_type", BANK_ACCOUNT_TYPE, nullable=True),
            sa.Column("minimum_withdrawal_amount", sa.Numeric(14, 2), server_default="10000", nullable=False),
            sa.Column("maximum_withdrawal_amount", sa.Numeric(14, 2), server_default="1000000", nullable=False),
            sa.Column("preferred_withdrawal_type", WITHDRAWAL_TYPE, server_default="partial", nullable=False),
            sa.Column("last_withdrawal_at", sa.DateTime(timezone=True), nullable=True),
        )
        _actor_indexes("agents")

    # Landlords and tenants
    for table in ("landlords", "tenants"):
        if not _table_exists(table):
            op.create_table(table, *_actor_columns(table))
            _actor_indexes(table)

    # Referral entries
    if not _table_exists("referral_entries"):
        op.create_table(
            "referral_entries",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("referrer_kind", ACTOR_KIND, nullable=False),
            sa.Column("referrer_id", sa.Integer(), nullable=False),
            sa.Column("referred_kind", ACTOR_KIND, nullable=False),
            sa.Column("referred_id", sa.Integer(), nullable=False),
            sa.Column("commission", sa.Numeric(14, 2), server_default="0", nullable=False),
            sa.Column("status", REFERRAL_STATUS, server_default="pending", nullable=False),
            sa.Column("is_paid", sa.Boolean(), server_default="false", nullable=False),
            sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint(
                "referrer_kind", "referrer_id", "referred_kind", "referred_id",
                name="uq_referral_entries_pair",
            ),
        )
        op.create_index("ix_referral_entries_referrer_id", "referral_entries", ["referrer_id"])

    if not _table_exists("referral_transactions"):
        op.create_table(
            "referral_transactions",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "entry_id",
                sa.Integer(),
                sa.ForeignKey("referral_entries.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("amount", sa.Numeric(14, 2), nullable=False),
            sa.Column("commission", sa.Numeric(14, 2), nullable=False),
            sa.Column("description", sa.String(255), nullable=False),
            sa.Column("status", REFERRAL_STATUS, server_default="completed", nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_referral_transactions_entry_id", "referral_transactions", ["entry_id"])

    # Ranking tiers
    if not _table_exists("ranking_tiers"):
        op.create_table(
            "ranking_tiers",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(50), nullable=False),
            sa.Column("minimum_earnings", sa.Numeric(14, 2), nullable=False),
            sa.Column("bonus", sa.Numeric(5, 2), nullable=False),
            sa.Column("color", sa.String(50), server_default="bg-gray-500", nullable=False),
            sa.Column("order", sa.Integer(), nullable=False),
            *_timestamps(),
            sa.CheckConstraint("minimum_earnings >= 0", name="ck_ranking_tiers_min_earnings"),
            sa.CheckConstraint("bonus >= 0 AND bonus <= 100", name="ck_ranking_tiers_bonus_range"),
        )
        op.create_index("ix_ranking_tiers_name", "ranking_tiers", ["name"], unique=True)

    # Withdrawal requests
    if not _table_exists("withdrawal_requests"):
        op.create_table(
            "withdrawal_requests",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=False),
            sa.Column("amount", sa.Numeric(14, 2), nullable=False),
            sa.Column("status", WITHDRAWAL_STATUS, server_default="pending", nullable=False),
            sa.Column("withdrawal_type", WITHDRAWAL_TYPE, nullable=False),
            sa.Column("transaction_reference", sa.String(40), nullable=False),
            sa.Column("request_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("processed_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("processed_by_id", sa.Integer(), sa.ForeignKey("admins.id"), nullable=True),
            sa.Column("remarks", sa.Text(), nullable=True),
            sa.Column("failure_reason", sa.Text(), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("transaction_reference", name="uq_withdrawal_requests_transaction_reference"),
            sa.CheckConstraint("amount > 0", name="ck_withdrawal_requests_amount_positive"),
        )
        op.create_index("ix_withdrawal_requests_agent_id", "withdrawal_requests", ["agent_id"])
        op.create_index("ix_withdrawal_requests_status", "withdrawal_requests", ["status"])
        op.create_index("ix_withdrawal_requests_request_date", "withdrawal_requests", ["request_date"])

    # Commission configs
    if not _table_exists("commission_configs"):
        op.create_table(
            "commission_configs",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("base_rate", sa.Numeric(5, 2), server_default="10", nullable=False),
            sa.Column("frequency_multipliers", sa.JSON(), nullable=True),
            sa.Column("effective_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("status", CONFIG_STATUS, server_default="active", nullable=False),
            *_timestamps(),
        )
        op.create_index("ix_commission_configs_status", "commission_configs", ["status"])

    if not _table_exists("commission_tier_rates"):
        op.create_table(
            "commission_tier_rates",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "config_id",
                sa.Integer(),
                sa.ForeignKey("commission_configs.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("min_amount", sa.Numeric(16, 2), nullable=False),
            sa.Column("max_amount", sa.Numeric(16, 2), nullable=True),
            sa.Column("rate", sa.Numeric(5, 2), nullable=False),
        )
        op.create_index("ix_commission_tier_rates_config_id", "commission_tier_rates", ["config_id"])

    # Audit logs
    if not _table_exists("audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("admin_id", sa.Integer(), sa.ForeignKey("admins.id"), nullable=False),
            sa.Column("action", AUDIT_ACTION, nullable=False),
            sa.Column("target_type", sa.String(50), nullable=True),
            sa.Column("target_id", sa.Integer(), nullable=True),
            sa.Column("action_metadata", sa.JSON(), nullable=True),
            sa.Column("ip_address", sa.String(45), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_audit_logs_admin_id", "audit_logs", ["admin_id"])
        op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
        op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # Notifications
    if not _table_exists("notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("recipient_kind", sa.String(20), nullable=False),
            sa.Column("recipient_id", sa.Integer(), nullable=False),
            sa.Column("template_id", sa.String(100), nullable=False),
            sa.Column("data", sa.JSON(), nullable=True),
            sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])


def downgrade() -> None:
    """Drop all ledger tables."""
    for table in (
        "notifications",
        "audit_logs",
        "commission_tier_rates",
        "commission_configs",
        "withdrawal_requests",
        "ranking_tiers",
        "referral_transactions",
        "referral_entries",
        "tenants",
        "landlords",
        "agents",
        "admins",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
