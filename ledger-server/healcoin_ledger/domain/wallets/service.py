"""Wallet ledger: the only writer of HealCoin balances."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar
from weakref import WeakValueDictionary

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healcoin_ledger.core.clock import Clock, utcnow
from healcoin_ledger.core.config import Settings
from healcoin_ledger.core.retry import RetryConfig, RetryExhausted, retry_async
from healcoin_ledger.db.models import Reward as RewardModel, Wallet as WalletModel, WalletTransaction as WalletTransactionModel
from healcoin_ledger.domain.audit.models import WALLET_UPDATE, ReversalResult
from healcoin_ledger.domain.audit.service import AuditTrail, snapshot_of
from healcoin_ledger.domain.common import (
    AccountInactive,
    DuplicateDetected,
    InsufficientBalance,
    NotFound,
    OutOfStock,
    Page,
    StorageConflict,
    StorageUnavailable,
    SuspiciousActivity,
    ValidationError,
    page_offset,
)
from healcoin_ledger.domain.fraud import ActionContext, EarnContext, FraudHeuristics, FraudSignal, RedeemContext
from healcoin_ledger.domain.limits import CapsLimitsTracker, UsageSummary
from healcoin_ledger.domain.rewards import RewardItem
from healcoin_ledger.infrastructure.database.repositories.reward_repository import SqlRewardRepository
from healcoin_ledger.infrastructure.database.repositories.wallet_repository import SqlWalletRepository

from .models import EARN, REDEEM, REFUND, LedgerReceipt, WalletSnapshot, WalletTransactionRecord

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


def _usage_of(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> Tuple[int, int]:
    """Coins earned and redeemed by the write that moved a wallet from ``before`` to ``after``."""
    before, after = before or {}, after or {}
    return (
        int(after.get("total_earned", 0)) - int(before.get("total_earned", 0)),
        int(after.get("total_redeemed", 0)) - int(before.get("total_redeemed", 0)),
    )


@dataclass(slots=True)
class LedgerUnit:
    """Collaborators bound to one session transaction and one instant."""

    now: datetime
    wallets: SqlWalletRepository
    rewards: SqlRewardRepository
    caps: CapsLimitsTracker
    fraud: FraudHeuristics
    audit: AuditTrail


class WalletLedger:
    """Balance mutations are serialized per account and applied atomically.

    Within the process an ``asyncio.Lock`` per account orders concurrent calls.
    Across processes the wallet row's ``version`` column guards every write; a
    lost race surfaces as :class:`StorageConflict` and the whole attempt, checks
    included, is replayed on a fresh transaction. Rejections never retry.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._clock = clock
        self._locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()
        self._retry = RetryConfig.from_settings(settings.ledger, (StorageConflict,))

    @property
    def settings(self) -> Settings:
        return self._settings

    async def get_balance(self, account_id: str) -> WalletSnapshot:
        """Return the wallet, creating an empty one on first access."""
        self._validate_account(account_id)

        async def work(unit: LedgerUnit) -> WalletSnapshot:
            wallet = await self._load_or_create(unit, account_id)
            return snapshot_of(wallet)

        return await self._atomic(account_id, work)

    async def earn(
        self,
        account_id: str,
        amount: int,
        source: str,
        *,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> LedgerReceipt:
        self._validate_account(account_id)
        self._validate_amount(amount)
        if not source or not source.strip():
            raise ValidationError("Earning source is required")

        async def work(unit: LedgerUnit) -> LedgerReceipt:
            wallet = await self._load_or_create(unit, account_id)
            replay = await self._replay(unit, wallet, EARN, idempotency_key)
            if replay is not None:
                return replay
            self._ensure_active(wallet)

            await unit.caps.check_earn(account_id, amount, unit.now, wallet.daily_earn_limit)
            if await unit.fraud.is_duplicate_earning(account_id, source, amount, unit.now):
                raise DuplicateDetected(
                    "Duplicate earning detected",
                    context={"source": source, "amount": amount},
                )
            signal = await self._screen(unit, account_id, EarnContext(amount, source))

            return await self._commit(
                unit,
                wallet,
                type=EARN,
                amount=amount,
                balance_delta=amount,
                source=source,
                description=description or f"Earned {amount} HealCoins from {source}",
                metadata=metadata,
                signal=signal,
                idempotency_key=idempotency_key,
                actor_id=actor_id or account_id,
                earn_delta=amount,
            )

        return await self._atomic(account_id, work)

    async def redeem(
        self,
        account_id: str,
        amount: Optional[int] = None,
        reward_id: Optional[str] = None,
        *,
        idempotency_key: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> LedgerReceipt:
        """Spend coins either as a plain amount or against a catalogue reward.

        With both given, ``amount`` is charged and the reward's stock is still
        taken.
        """
        self._validate_account(account_id)
        if amount is None and not reward_id:
            raise ValidationError("Either amount or reward_id must be provided")
        if amount is not None:
            self._validate_amount(amount)

        async def work(unit: LedgerUnit) -> LedgerReceipt:
            wallet = await self._load_or_create(unit, account_id)
            replay = await self._replay(unit, wallet, REDEEM, idempotency_key)
            if replay is not None:
                return replay
            self._ensure_active(wallet)

            reward: Optional[RewardItem] = None
            cost = amount
            if reward_id:
                reward = await self._resolve_reward(unit, reward_id)
                if cost is None:
                    cost = reward.cost
            if cost is None or cost <= 0:
                raise ValidationError("Invalid redemption amount")

            if wallet.heal_coin_balance < cost:
                raise InsufficientBalance(
                    "Insufficient HealCoins balance",
                    context={"balance": wallet.heal_coin_balance, "required": cost},
                )
            await unit.caps.check_redeem(account_id, cost, unit.now, wallet.monthly_redeem_limit)
            if reward_id and await unit.fraud.is_duplicate_redemption(account_id, reward_id, unit.now):
                raise DuplicateDetected("Duplicate redemption detected", context={"reward_id": reward_id})
            signal = await self._screen(unit, account_id, RedeemContext(cost, reward_id))

            if reward is not None and not await unit.rewards.decrement_stock(reward.id, unit.now):
                raise OutOfStock("Reward is out of stock", context={"reward_id": reward.id})

            return await self._commit(
                unit,
                wallet,
                type=REDEEM,
                amount=cost,
                balance_delta=-cost,
                source=f"reward:{reward.id}" if reward else "cash",
                description=f"Redeemed {reward.name}" if reward else f"Redeemed {cost} HealCoins",
                metadata={"reward_id": reward.id} if reward else None,
                signal=signal,
                idempotency_key=idempotency_key,
                actor_id=actor_id or account_id,
                redeem_delta=cost,
            )

        return await self._atomic(account_id, work)

    async def credit_refund(
        self,
        account_id: str,
        amount: int,
        reason: str,
        *,
        idempotency_key: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> LedgerReceipt:
        """Credit coins back; refunds are not capped, deduplicated or fraud-screened."""
        self._validate_account(account_id)
        self._validate_amount(amount)
        if not reason or not reason.strip():
            raise ValidationError("Refund reason is required")

        async def work(unit: LedgerUnit) -> LedgerReceipt:
            wallet = await self._load_or_create(unit, account_id)
            replay = await self._replay(unit, wallet, REFUND, idempotency_key)
            if replay is not None:
                return replay

            return await self._commit(
                unit,
                wallet,
                type=REFUND,
                amount=amount,
                balance_delta=amount,
                source="refund",
                description=reason,
                metadata={"reason": reason},
                signal=FraudSignal.clear(),
                idempotency_key=idempotency_key,
                actor_id=actor_id or account_id,
            )

        return await self._atomic(account_id, work)

    async def reverse(self, actor_id: str, audit_entry_id: str) -> ReversalResult:
        """Undo a wallet write; allowance it consumed in still-open cap periods is released."""
        if not actor_id:
            raise ValidationError("Actor id is required")
        async with self._session_factory() as session:
            entry = await AuditTrail.with_session(session).get_entry(audit_entry_id)

        async def work(unit: LedgerUnit) -> ReversalResult:
            result = await unit.audit.reverse(actor_id, audit_entry_id, unit.now)
            earned, redeemed = _usage_of(entry.before, entry.after)
            if earned > 0 or redeemed > 0:
                await unit.caps.release_usage(
                    entry.entity_id, max(earned, 0), max(redeemed, 0), entry.created_at, unit.now
                )
            return result

        return await self._atomic(entry.entity_id, work)

    async def list_transactions(self, account_id: str, page: int = 1, limit: int = 20) -> Page[WalletTransactionRecord]:
        self._validate_account(account_id)
        async with self._session_factory() as session:
            repository = SqlWalletRepository(session)
            rows = await repository.list_transactions(account_id, limit, page_offset(page, limit))
            total = await repository.count_transactions(account_id)
        return Page(items=[self._to_transaction(row) for row in rows], page=page, limit=limit, total=total)

    async def get_limits(self, account_id: str) -> UsageSummary:
        self._validate_account(account_id)
        async with self._session_factory() as session:
            wallet = await SqlWalletRepository(session).get_wallet(account_id)
            tracker = CapsLimitsTracker.with_session(session, self._settings.caps, self._clock)
            return await tracker.summary(
                account_id,
                daily_cap=wallet.daily_earn_limit if wallet else None,
                monthly_cap=wallet.monthly_redeem_limit if wallet else None,
            )

    async def _atomic(self, account_id: str, work: Callable[[LedgerUnit], Awaitable[ResultT]]) -> ResultT:
        async with self._lock_for(account_id):
            try:
                return await retry_async(self._attempt, self._retry, work)
            except RetryExhausted as exc:
                logger.error("Ledger write for %s abandoned after %s attempts", account_id, exc.attempts)
                raise StorageUnavailable(
                    "Ledger storage is unavailable, please retry later",
                    context={"account_id": account_id, "attempts": exc.attempts},
                ) from exc

    async def _attempt(self, work: Callable[[LedgerUnit], Awaitable[ResultT]]) -> ResultT:
        now = self._clock()
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    return await work(self._unit(session, now))
            except DBAPIError as exc:
                raise StorageConflict(f"storage error: {exc.orig!r}") from exc

    def _unit(self, session: AsyncSession, now: datetime) -> LedgerUnit:
        def fixed() -> datetime:
            return now

        return LedgerUnit(
            now=now,
            wallets=SqlWalletRepository(session),
            rewards=SqlRewardRepository(session),
            caps=CapsLimitsTracker.with_session(session, self._settings.caps, fixed),
            fraud=FraudHeuristics.with_session(session, self._settings.fraud, fixed),
            audit=AuditTrail.with_session(session, fixed),
        )

    def _lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    async def _load_or_create(self, unit: LedgerUnit, account_id: str) -> WalletModel:
        wallet = await unit.wallets.get_wallet(account_id)
        if wallet is None:
            wallet = await unit.wallets.create_wallet(account_id, unit.now)
            logger.info("Created wallet for %s", account_id)
        return wallet

    async def _replay(
        self,
        unit: LedgerUnit,
        wallet: WalletModel,
        type: str,
        idempotency_key: Optional[str],
    ) -> Optional[LedgerReceipt]:
        if not idempotency_key:
            return None
        previous = await unit.wallets.find_by_idempotency_key(wallet.account_id, idempotency_key)
        if previous is None:
            return None

        window = timedelta(hours=self._settings.ledger.idempotency_window_hours)
        if unit.now - previous.created_at > window:
            raise ValidationError(
                "Idempotency key has expired, use a new key",
                context={"idempotency_key": idempotency_key},
            )
        if previous.type != type:
            raise ValidationError(
                "Idempotency key was already used for a different operation",
                context={"idempotency_key": idempotency_key, "type": previous.type},
            )
        # the receipt shows the wallet as that write left it, not as it is now
        account = snapshot_of(wallet)
        if previous.audit_log_id:
            original = await unit.audit.get_entry(previous.audit_log_id)
            if original.after:
                account = WalletSnapshot.from_audit_dict(original.after)
        logger.info("Replaying %s %s for %s", type, previous.id, wallet.account_id)
        return LedgerReceipt(account=account, transaction_id=previous.id, replayed=True)

    async def _screen(self, unit: LedgerUnit, account_id: str, context: ActionContext) -> FraudSignal:
        signal = await unit.fraud.is_suspicious_activity(account_id, context, unit.now)
        if signal.is_suspicious and self._settings.fraud.block_suspicious:
            raise SuspiciousActivity(signal.reason or "Suspicious activity detected", context={"action": context.action})
        return signal

    async def _resolve_reward(self, unit: LedgerUnit, reward_id: str) -> RewardItem:
        model = await unit.rewards.get_reward(reward_id)
        if model is None or not model.is_active:
            raise NotFound(f"Reward not found: {reward_id}", context={"reward_id": reward_id})
        reward = self._to_reward(model)
        if reward.stock <= 0:
            raise OutOfStock("Reward is out of stock", context={"reward_id": reward_id})
        if reward.cost <= 0:
            raise ValidationError("Reward has no valid cost", context={"reward_id": reward_id})
        return reward

    async def _commit(
        self,
        unit: LedgerUnit,
        wallet: WalletModel,
        *,
        type: str,
        amount: int,
        balance_delta: int,
        source: str,
        description: str,
        metadata: Optional[Dict[str, Any]],
        signal: FraudSignal,
        idempotency_key: Optional[str],
        actor_id: str,
        earn_delta: int = 0,
        redeem_delta: int = 0,
    ) -> LedgerReceipt:
        account_id = wallet.account_id
        # the ORM instance is refreshed in place by compare_and_set
        before = snapshot_of(wallet)

        updated = await unit.wallets.compare_and_set(
            account_id,
            before.version,
            heal_coin_balance=before.heal_coin_balance + balance_delta,
            total_earned=before.total_earned + earn_delta,
            total_redeemed=before.total_redeemed + redeem_delta,
            last_transaction_at=unit.now,
            updated_at=unit.now,
        )
        if updated is None:
            raise StorageConflict(f"wallet {account_id} changed concurrently")
        after = snapshot_of(updated)

        entry = await unit.audit.append(
            actor_id,
            WALLET_UPDATE,
            account_id,
            before.to_audit_dict(),
            after.to_audit_dict(),
            f"WalletLedger:{type}",
            now=unit.now,
        )

        meta = dict(metadata or {})
        if signal.is_suspicious:
            meta["fraud_signal"] = signal.reason
        tx = await unit.wallets.add_transaction(
            account_id=account_id,
            type=type,
            amount=amount,
            balance_delta=balance_delta,
            source=source,
            description=description,
            metadata=meta,
            idempotency_key=idempotency_key,
            audit_log_id=entry.id,
            created_at=unit.now,
        )
        if earn_delta or redeem_delta:
            await unit.caps.record_usage(account_id, earn_delta, redeem_delta, unit.now)

        logger.info("%s of %s committed for %s, balance %s", type, amount, account_id, after.heal_coin_balance)
        return LedgerReceipt(account=after, transaction_id=tx.id)

    @staticmethod
    def _validate_account(account_id: str) -> None:
        if not account_id or not str(account_id).strip():
            raise ValidationError("Account id is required")

    @staticmethod
    def _validate_amount(amount: Any) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("Amount must be a positive integer", context={"amount": amount})

    @staticmethod
    def _ensure_active(wallet: WalletModel) -> None:
        if not wallet.is_active:
            raise AccountInactive("Wallet is inactive", context={"account_id": wallet.account_id})

    @staticmethod
    def _to_reward(model: RewardModel) -> RewardItem:
        return RewardItem(
            id=model.id,
            name=model.name,
            cost=model.heal_coins_cost,
            stock=model.stock,
            is_active=model.is_active,
        )

    @staticmethod
    def _to_transaction(model: WalletTransactionModel) -> WalletTransactionRecord:
        return WalletTransactionRecord(
            id=model.id,
            account_id=model.account_id,
            type=model.type,
            amount=model.amount,
            balance_delta=model.balance_delta,
            source=model.source,
            description=model.description,
            metadata=dict(model.meta or {}),
            idempotency_key=model.idempotency_key,
            audit_log_id=model.audit_log_id,
            created_at=model.created_at,
        )
