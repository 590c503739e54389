"""Wallet endpoints: balance, history, limits and the three balance mutations."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from healcoin_ledger.domain.wallets import LedgerReceipt, WalletSnapshot
from healcoin_ledger.domain.wallets.service import WalletLedger
from healcoin_ledger.interfaces.http.deps import get_idempotency_key, get_ledger
from healcoin_ledger.schemas import (
    EarnRequest,
    LedgerReceiptResponse,
    RedeemRequest,
    RefundRequest,
    UsageSummaryResponse,
    WalletSnapshotResponse,
    WalletTransactionListResponse,
    WalletTransactionResponse,
)

router = APIRouter()

AccountId = Path(..., min_length=1, max_length=128, description="Wallet owner")


def _to_wallet_response(snapshot: WalletSnapshot) -> WalletSnapshotResponse:
    return WalletSnapshotResponse.model_validate(snapshot)


def _to_receipt_response(receipt: LedgerReceipt) -> LedgerReceiptResponse:
    return LedgerReceiptResponse(
        balance=receipt.balance,
        transaction_id=receipt.transaction_id,
        replayed=receipt.replayed,
        wallet=_to_wallet_response(receipt.account),
    )


@router.get("/{account_id}", response_model=WalletSnapshotResponse, summary="Get wallet balance")
async def get_wallet(
    account_id: str = AccountId,
    ledger: WalletLedger = Depends(get_ledger),
) -> WalletSnapshotResponse:
    snapshot = await ledger.get_balance(account_id)
    return _to_wallet_response(snapshot)


@router.get(
    "/{account_id}/transactions",
    response_model=WalletTransactionListResponse,
    summary="List wallet transactions, newest first",
)
async def list_wallet_transactions(
    account_id: str = AccountId,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    ledger: WalletLedger = Depends(get_ledger),
) -> WalletTransactionListResponse:
    result = await ledger.list_transactions(account_id, page=page, limit=limit)
    return WalletTransactionListResponse(
        transactions=[WalletTransactionResponse.model_validate(item) for item in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        has_next=result.has_next,
        has_prev=result.has_prev,
    )


@router.get("/{account_id}/limits", response_model=UsageSummaryResponse, summary="Current usage against caps")
async def get_wallet_limits(
    account_id: str = AccountId,
    ledger: WalletLedger = Depends(get_ledger),
) -> UsageSummaryResponse:
    summary = await ledger.get_limits(account_id)
    return UsageSummaryResponse.model_validate(summary)


@router.post("/{account_id}/earn", response_model=LedgerReceiptResponse, summary="Credit earned HealCoins")
async def earn_coins(
    payload: EarnRequest,
    account_id: str = AccountId,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    ledger: WalletLedger = Depends(get_ledger),
) -> LedgerReceiptResponse:
    receipt = await ledger.earn(
        account_id,
        payload.amount,
        payload.source,
        description=payload.description,
        metadata=payload.metadata,
        idempotency_key=idempotency_key,
    )
    return _to_receipt_response(receipt)


@router.post("/{account_id}/redeem", response_model=LedgerReceiptResponse, summary="Spend HealCoins")
async def redeem_coins(
    payload: RedeemRequest,
    account_id: str = AccountId,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    ledger: WalletLedger = Depends(get_ledger),
) -> LedgerReceiptResponse:
    receipt = await ledger.redeem(
        account_id,
        amount=payload.amount,
        reward_id=payload.reward_id,
        idempotency_key=idempotency_key,
    )
    return _to_receipt_response(receipt)


@router.post("/{account_id}/refund", response_model=LedgerReceiptResponse, summary="Refund HealCoins")
async def refund_coins(
    payload: RefundRequest,
    account_id: str = AccountId,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    ledger: WalletLedger = Depends(get_ledger),
) -> LedgerReceiptResponse:
    receipt = await ledger.credit_refund(
        account_id,
        payload.amount,
        payload.reason,
        idempotency_key=idempotency_key,
    )
    return _to_receipt_response(receipt)
