"""Pydantic schemas used across the project."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class WalletSnapshotResponse(BaseModel):
    account_id: str
    heal_coin_balance: int
    inr_balance: int
    total_earned: int
    total_redeemed: int
    is_active: bool
    last_transaction_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionResponse(BaseModel):
    id: str
    type: str
    amount: int
    balance_delta: int
    source: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    audit_log_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionListResponse(BaseModel):
    transactions: list[WalletTransactionResponse] = Field(default_factory=list)
    page: int
    limit: int
    total: int
    has_next: bool
    has_prev: bool


class EarnRequest(BaseModel):
    amount: StrictInt = Field(..., gt=0, description="HealCoins to credit")
    source: str = Field(..., min_length=1, max_length=128, description="Activity that produced the coins")
    description: Optional[str] = Field(None, max_length=255)
    metadata: dict[str, Any] = Field(default_factory=dict)


class RedeemRequest(BaseModel):
    amount: Optional[StrictInt] = Field(None, gt=0, description="Coins to spend; defaults to the reward cost")
    reward_id: Optional[str] = Field(None, description="Catalogue reward to claim")


class RefundRequest(BaseModel):
    amount: StrictInt = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=255)


class LedgerReceiptResponse(BaseModel):
    balance: int
    transaction_id: str
    replayed: bool = False
    wallet: WalletSnapshotResponse


class UsageSummaryResponse(BaseModel):
    daily_earned: int
    daily_redeemed: int
    monthly_redeemed: int
    daily_earn_cap: int
    daily_redeem_cap: int
    monthly_redeem_cap: int
    daily_earn_remaining: int
    daily_redeem_remaining: int
    monthly_redeem_remaining: int

    model_config = ConfigDict(from_attributes=True)


class LoginEventRequest(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=128)
    ip_address: Optional[str] = Field(None, max_length=64)


class FraudSignalResponse(BaseModel):
    is_suspicious: bool
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LoginEventResponse(BaseModel):
    login_id: str
    signal: FraudSignalResponse


class AuditEntryResponse(BaseModel):
    id: str
    actor_id: str
    action_type: str
    entity_id: str
    sequence: int
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    source: str
    hash: str
    previous_hash: Optional[str] = None
    reference_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditEntryListResponse(BaseModel):
    entries: list[AuditEntryResponse] = Field(default_factory=list)
    page: int
    limit: int
    total: int
    has_next: bool
    has_prev: bool


class IntegrityReportResponse(BaseModel):
    entity_id: str
    checked: int
    valid: bool
    errors: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ReversalResponse(BaseModel):
    reversal_entry_id: str
    reversed_entry_id: str
    transaction_id: Optional[str] = None
    wallet: WalletSnapshotResponse


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    environment: str
