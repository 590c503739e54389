"""create ledger tables

Revision ID: 3f9c1e7a2b40
Revises: 
Create Date: 2026-10-19 09:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9c1e7a2b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "wallets",
        sa.Column("account_id", sa.String(length=128), primary_key=True),
        sa.Column("heal_coin_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("inr_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_redeemed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_transaction_at", sa.DateTime()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_earn_limit", sa.Integer()),
        sa.Column("monthly_redeem_limit", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime()),
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("account_id", sa.String(length=128), sa.ForeignKey("wallets.account_id"), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_delta", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=255)),
        sa.Column("metadata", sa.JSON()),
        sa.Column("idempotency_key", sa.String(length=128)),
        sa.Column("audit_log_id", sa.String(length=36)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("account_id", "idempotency_key", name="uq_wallet_transactions_idempotency"),
    )
    op.create_index("ix_wallet_transactions_account_id", "wallet_transactions", ["account_id"])
    op.create_index("ix_wallet_transactions_account_created", "wallet_transactions", ["account_id", "created_at"])

    op.create_table(
        "usage_counters",
        sa.Column("account_id", sa.String(length=128), sa.ForeignKey("wallets.account_id"), primary_key=True),
        sa.Column("daily_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_redeemed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("monthly_redeemed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("period_anchor", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("before", sa.JSON()),
        sa.Column("after", sa.JSON()),
        sa.Column("source", sa.String(length=100), nullable=False),
        sa.Column("hash", sa.String(length=64), nullable=False),
        sa.Column("previous_hash", sa.String(length=64)),
        sa.Column("reference_id", sa.String(length=36)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("entity_id", "sequence", name="uq_audit_logs_entity_sequence"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action_type", "audit_logs", ["action_type"])
    op.create_index("ix_audit_logs_reference_id", "audit_logs", ["reference_id"])
    op.create_index("ix_audit_logs_entity_created", "audit_logs", ["entity_id", "created_at"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("heal_coins_cost", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime()),
    )

    op.create_table(
        "user_logins",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("account_id", sa.String(length=128), nullable=False),
        sa.Column("device_id", sa.String(length=128), nullable=False),
        sa.Column("ip_address", sa.String(length=45)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_user_logins_account_created", "user_logins", ["account_id", "created_at"])

    op.create_table(
        "carbon_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("account_id", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("co2_saved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_carbon_logs_account_action", "carbon_logs", ["account_id", "action"])

    op.create_table(
        "game_scores",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("account_id", sa.String(length=128), nullable=False),
        sa.Column("game_id", sa.String(length=100), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("play_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_game_scores_account_game", "game_scores", ["account_id", "game_id"])


def downgrade() -> None:
    op.drop_index("ix_game_scores_account_game", table_name="game_scores")
    op.drop_table("game_scores")

    op.drop_index("ix_carbon_logs_account_action", table_name="carbon_logs")
    op.drop_table("carbon_logs")

    op.drop_index("ix_user_logins_account_created", table_name="user_logins")
    op.drop_table("user_logins")

    op.drop_table("rewards")

    op.drop_index("ix_audit_logs_entity_created", table_name="audit_logs")
    op.drop_index("ix_audit_logs_reference_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action_type", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_table("usage_counters")

    op.drop_index("ix_wallet_transactions_account_created", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_account_id", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")

    op.drop_table("wallets")
