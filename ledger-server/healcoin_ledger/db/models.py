"""SQLAlchemy ORM models."""
import uuid
from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from healcoin_ledger.core.clock import utcnow
from healcoin_ledger.infrastructure.database.base import Base, UTCDateTime


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Wallet(Base):
    __tablename__ = "wallets"

    account_id = Column(String(128), primary_key=True)
    heal_coin_balance = Column(Integer, nullable=False, default=0)
    inr_balance = Column(Integer, nullable=False, default=0)
    total_earned = Column(Integer, nullable=False, default=0)
    total_redeemed = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    last_transaction_at = Column(UTCDateTime)
    # optimistic concurrency token, bumped by every balance write
    version = Column(Integer, nullable=False, default=0)
    # per-account cap overrides; the configured caps apply while these are NULL
    daily_earn_limit = Column(Integer)
    monthly_redeem_limit = Column(Integer)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, onupdate=utcnow)


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        UniqueConstraint("account_id", "idempotency_key", name="uq_wallet_transactions_idempotency"),
        Index("ix_wallet_transactions_account_created", "account_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(128), ForeignKey("wallets.account_id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # earn, redeem, refund, bonus, reversal
    amount = Column(Integer, nullable=False)
    balance_delta = Column(Integer, nullable=False)
    source = Column(String(255), nullable=False)
    description = Column(String(255))
    meta = Column("metadata", JSON)
    idempotency_key = Column(String(128))
    audit_log_id = Column(String(36))
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class UsageCounter(Base):
    __tablename__ = "usage_counters"

    account_id = Column(String(128), ForeignKey("wallets.account_id"), primary_key=True)
    daily_earned = Column(Integer, nullable=False, default=0)
    daily_redeemed = Column(Integer, nullable=False, default=0)
    monthly_redeemed = Column(Integer, nullable=False, default=0)
    period_anchor = Column(UTCDateTime, nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        # a second writer extending the same chain position collides here
        UniqueConstraint("entity_id", "sequence", name="uq_audit_logs_entity_sequence"),
        Index("ix_audit_logs_entity_created", "entity_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    actor_id = Column(String(128), nullable=False, index=True)
    action_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(128), nullable=False)
    sequence = Column(Integer, nullable=False)
    before = Column(JSON)
    after = Column(JSON)
    source = Column(String(100), nullable=False)
    hash = Column(String(64), nullable=False)
    previous_hash = Column(String(64))
    reference_id = Column(String(36), index=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class Reward(Base):
    __tablename__ = "rewards"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(150), nullable=False)
    description = Column(Text)
    heal_coins_cost = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, onupdate=utcnow)


class UserLogin(Base):
    __tablename__ = "user_logins"
    __table_args__ = (Index("ix_user_logins_account_created", "account_id", "created_at"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(128), nullable=False)
    device_id = Column(String(128), nullable=False)
    ip_address = Column(String(45))
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class CarbonLog(Base):
    __tablename__ = "carbon_logs"
    __table_args__ = (Index("ix_carbon_logs_account_action", "account_id", "action"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(128), nullable=False)
    action = Column(String(100), nullable=False)
    co2_saved = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class GameScore(Base):
    __tablename__ = "game_scores"
    __table_args__ = (Index("ix_game_scores_account_game", "account_id", "game_id"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(128), nullable=False)
    game_id = Column(String(100), nullable=False)
    score = Column(Integer, nullable=False, default=0)
    play_time = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
