import asyncio

import pytest
from sqlalchemy import func, select, update

from healcoin_ledger.core.container import ApplicationContainer
from healcoin_ledger.db.models import Reward, Wallet, WalletTransaction
from healcoin_ledger.domain.common import (
    AccountInactive,
    CapExceeded,
    DuplicateDetected,
    InsufficientBalance,
    NotFound,
    OutOfStock,
    StorageUnavailable,
    ValidationError,
)
from healcoin_ledger.infrastructure.database.repositories import SqlWalletRepository


async def _ledger_sum(container, account_id):
    async with container.session() as session:
        stmt = select(func.coalesce(func.sum(WalletTransaction.balance_delta), 0)).where(
            WalletTransaction.account_id == account_id
        )
        return int((await session.execute(stmt)).scalar_one())


async def _transaction_count(container, account_id):
    async with container.session() as session:
        return await SqlWalletRepository(session).count_transactions(account_id)


class TestBalance:

    async def test_first_read_creates_empty_wallet(self, ledger):
        snapshot = await ledger.get_balance("acct-new")
        assert snapshot.heal_coin_balance == 0
        assert snapshot.inr_balance == 0
        assert snapshot.is_active is True
        assert snapshot.last_transaction_at is None

    async def test_concurrent_first_reads_create_one_wallet(self, ledger, container):
        snapshots = await asyncio.gather(*(ledger.get_balance("acct-race") for _ in range(10)))

        assert {snapshot.heal_coin_balance for snapshot in snapshots} == {0}
        async with container.session() as session:
            count = (
                await session.execute(
                    select(func.count()).select_from(Wallet).where(Wallet.account_id == "acct-race")
                )
            ).scalar_one()
        assert count == 1

    @pytest.mark.parametrize("account_id", ["", "   "])
    async def test_account_id_required(self, ledger, account_id):
        with pytest.raises(ValidationError):
            await ledger.get_balance(account_id)


class TestEarn:

    async def test_concrete_scenario(self, ledger, clock):
        assert (await ledger.earn("A", 30, "game:quiz")).balance == 30
        clock.advance(seconds=30)
        assert (await ledger.earn("A", 40, "game:quiz")).balance == 70
        clock.advance(seconds=30)
        assert (await ledger.redeem("A", amount=20)).balance == 50
        clock.advance(seconds=30)

        with pytest.raises(InsufficientBalance):
            await ledger.redeem("A", amount=1000)
        assert (await ledger.get_balance("A")).heal_coin_balance == 50

    async def test_earn_updates_totals_and_history(self, ledger, clock):
        receipt = await ledger.earn("acct-1", 25, "steps", description="Daily walk", metadata={"steps": 5000})

        assert receipt.replayed is False
        assert receipt.account.total_earned == 25
        assert receipt.account.last_transaction_at == clock()

        history = await ledger.list_transactions("acct-1")
        assert history.total == 1
        tx = history.items[0]
        assert tx.id == receipt.transaction_id
        assert tx.type == "earn"
        assert tx.balance_delta == 25
        assert tx.description == "Daily walk"
        assert tx.metadata == {"steps": 5000}
        assert tx.audit_log_id is not None

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True, "10"])
    async def test_rejects_bad_amounts(self, ledger, amount):
        with pytest.raises(ValidationError):
            await ledger.earn("acct-1", amount, "steps")

    async def test_rejects_empty_source(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.earn("acct-1", 10, " ")

    async def test_duplicate_submission_commits_once(self, ledger, container, clock):
        await ledger.earn("acct-1", 10, "game:g1")
        clock.advance(seconds=30)

        with pytest.raises(DuplicateDetected):
            await ledger.earn("acct-1", 10, "game:g1")

        assert await _transaction_count(container, "acct-1") == 1
        assert (await ledger.get_balance("acct-1")).heal_coin_balance == 10

    async def test_daily_cap_is_never_exceeded(self, ledger, clock):
        committed = 0
        for amount in (400, 350, 200, 100, 60, 40):
            try:
                await ledger.earn("acct-1", amount, f"activity:{amount}")
                committed += amount
            except CapExceeded:
                pass
            clock.advance(minutes=2)

        assert committed == 990
        with pytest.raises(CapExceeded, match="Transaction would exceed daily limit of 1000"):
            await ledger.earn("acct-1", 11, "steps")
        assert (await ledger.get_balance("acct-1")).heal_coin_balance == 990

        limits = await ledger.get_limits("acct-1")
        assert limits.daily_earned == 990
        assert limits.daily_earn_remaining == 10

    async def test_rollover_allows_new_daily_allowance(self, ledger, clock):
        await ledger.earn("acct-1", 900, "marathon")
        clock.advance(days=1)

        assert (await ledger.get_limits("acct-1")).daily_earned == 0
        receipt = await ledger.earn("acct-1", 950, "marathon")
        assert receipt.balance == 1850

    async def test_per_account_override(self, ledger, container):
        await ledger.get_balance("acct-1")
        async with container.session() as session:
            await session.execute(update(Wallet).where(Wallet.account_id == "acct-1").values(daily_earn_limit=100))

        with pytest.raises(CapExceeded, match="daily limit of 100"):
            await ledger.earn("acct-1", 150, "steps")
        assert (await ledger.get_limits("acct-1")).daily_earn_cap == 100

    async def test_zero_override_is_a_real_limit(self, ledger, container):
        await ledger.get_balance("acct-1")
        async with container.session() as session:
            await session.execute(update(Wallet).where(Wallet.account_id == "acct-1").values(daily_earn_limit=0))

        with pytest.raises(CapExceeded, match="daily limit of 0"):
            await ledger.earn("acct-1", 10, "steps")
        assert (await ledger.get_balance("acct-1")).heal_coin_balance == 0
        assert (await ledger.get_limits("acct-1")).daily_earn_cap == 0

    async def test_inactive_wallet(self, ledger, container):
        await ledger.get_balance("acct-1")
        async with container.session() as session:
            await session.execute(update(Wallet).where(Wallet.account_id == "acct-1").values(is_active=False))

        with pytest.raises(AccountInactive):
            await ledger.earn("acct-1", 10, "steps")


class TestFraudSignals:

    async def test_velocity_is_advisory_by_default(self, ledger, clock):
        for amount in (11, 12, 13, 14, 15):
            await ledger.earn("B", amount, "game:quiz")
            clock.advance(seconds=2)

        receipt = await ledger.earn("B", 16, "game:quiz")
        history = await ledger.list_transactions("B")
        flagged = next(item for item in history.items if item.id == receipt.transaction_id)
        assert flagged.metadata["fraud_signal"] == "Rapid successive transactions detected"
        assert receipt.balance == sum((11, 12, 13, 14, 15, 16))


class TestRedeem:

    async def test_requires_amount_or_reward(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.redeem("acct-1")

    async def test_reward_redemption_takes_cost_and_stock(self, ledger, container, make_reward, clock):
        reward_id = await make_reward(cost=120, stock=2)
        await ledger.earn("acct-1", 500, "marathon")
        clock.advance(minutes=1)

        receipt = await ledger.redeem("acct-1", reward_id=reward_id)

        assert receipt.balance == 380
        assert receipt.account.total_redeemed == 120
        tx = (await ledger.list_transactions("acct-1")).items[0]
        assert tx.source == f"reward:{reward_id}"
        assert tx.balance_delta == -120
        async with container.session() as session:
            assert (await session.get(Reward, reward_id)).stock == 1

    async def test_same_reward_twice_within_an_hour(self, ledger, make_reward, clock):
        reward_id = await make_reward(cost=50, stock=5)
        await ledger.earn("acct-1", 500, "marathon")
        clock.advance(minutes=1)
        await ledger.redeem("acct-1", reward_id=reward_id)
        clock.advance(minutes=10)

        with pytest.raises(DuplicateDetected):
            await ledger.redeem("acct-1", reward_id=reward_id)

        clock.advance(minutes=61)
        assert (await ledger.redeem("acct-1", reward_id=reward_id)).balance == 400

    async def test_out_of_stock_and_missing_rewards(self, ledger, make_reward, clock):
        empty = await make_reward(stock=0)
        retired = await make_reward(is_active=False)
        await ledger.earn("acct-1", 500, "marathon")

        with pytest.raises(OutOfStock):
            await ledger.redeem("acct-1", reward_id=empty)
        with pytest.raises(NotFound):
            await ledger.redeem("acct-1", reward_id=retired)
        with pytest.raises(NotFound):
            await ledger.redeem("acct-1", reward_id="no-such-reward")
        assert (await ledger.get_balance("acct-1")).heal_coin_balance == 500

    async def test_explicit_amount_wins_over_reward_cost(self, ledger, make_reward, clock):
        reward_id = await make_reward(cost=300, stock=1)
        await ledger.earn("acct-1", 500, "marathon")
        clock.advance(minutes=1)

        receipt = await ledger.redeem("acct-1", amount=100, reward_id=reward_id)
        assert receipt.balance == 400

    async def test_cap_checked_after_balance(self, ledger, container, clock):
        await ledger.earn("acct-1", 1000, "marathon")
        clock.advance(days=1)
        await ledger.earn("acct-1", 1000, "marathon")
        clock.advance(days=1)
        await ledger.earn("acct-1", 500, "marathon")
        clock.advance(minutes=1)

        with pytest.raises(CapExceeded, match="daily limit of 2000"):
            await ledger.redeem("acct-1", amount=2100)
        with pytest.raises(InsufficientBalance):
            await ledger.redeem("acct-1", amount=2600)


class TestRefund:

    async def test_refund_bypasses_caps(self, ledger, clock):
        await ledger.earn("acct-1", 1000, "marathon")
        clock.advance(minutes=1)

        receipt = await ledger.credit_refund("acct-1", 300, "Cancelled order")
        assert receipt.balance == 1300

        limits = await ledger.get_limits("acct-1")
        assert limits.daily_earned == 1000
        tx = (await ledger.list_transactions("acct-1")).items[0]
        assert tx.type == "refund"
        assert tx.description == "Cancelled order"

    async def test_refund_needs_reason(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.credit_refund("acct-1", 10, "")


class TestIdempotency:

    async def test_replay_returns_original_receipt(self, ledger, container, clock):
        first = await ledger.earn("acct-1", 40, "steps", idempotency_key="req-1")
        clock.advance(minutes=5)
        second = await ledger.earn("acct-1", 40, "steps", idempotency_key="req-1")

        assert second.replayed is True
        assert second.transaction_id == first.transaction_id
        assert second.balance == 40
        assert await _transaction_count(container, "acct-1") == 1

    async def test_replay_reports_balance_as_of_original_write(self, ledger, clock):
        first = await ledger.earn("acct-1", 40, "steps", idempotency_key="req-1")
        clock.advance(minutes=1)
        await ledger.earn("acct-1", 25, "walk")
        clock.advance(minutes=1)
        second = await ledger.earn("acct-1", 40, "steps", idempotency_key="req-1")

        assert second.replayed is True
        assert second.balance == first.balance == 40
        assert second.account.total_earned == 40
        assert (await ledger.get_balance("acct-1")).heal_coin_balance == 65

    async def test_key_reused_for_other_operation(self, ledger, clock):
        await ledger.earn("acct-1", 40, "steps", idempotency_key="req-1")
        with pytest.raises(ValidationError, match="different operation"):
            await ledger.redeem("acct-1", amount=10, idempotency_key="req-1")

    async def test_expired_key(self, ledger, clock):
        await ledger.earn("acct-1", 40, "steps", idempotency_key="req-1")
        clock.advance(hours=25)
        with pytest.raises(ValidationError, match="expired"):
            await ledger.earn("acct-1", 40, "steps", idempotency_key="req-1")


class TestConcurrency:

    async def test_balance_matches_transaction_sum_under_concurrency(self, ledger, container):
        await ledger.earn("acct-1", 300, "seed")

        operations = [ledger.earn("acct-1", amount, "game:quiz") for amount in range(5, 55, 5)]
        operations += [ledger.redeem("acct-1", amount=amount) for amount in (25, 35, 45)]
        operations += [ledger.credit_refund("acct-1", 7, "goodwill")]
        results = await asyncio.gather(*operations, return_exceptions=True)

        unexpected = [
            result
            for result in results
            if isinstance(result, Exception) and not isinstance(result, (CapExceeded, DuplicateDetected))
        ]
        assert unexpected == []

        snapshot = await ledger.get_balance("acct-1")
        assert snapshot.heal_coin_balance == await _ledger_sum(container, "acct-1")

    async def test_storage_conflicts_exhaust_into_unavailable(self, ledger, container, monkeypatch):
        await ledger.get_balance("acct-1")

        async def always_lose(self, account_id, expected_version, **values):
            return None

        monkeypatch.setattr(SqlWalletRepository, "compare_and_set", always_lose)

        with pytest.raises(StorageUnavailable):
            await ledger.earn("acct-1", 10, "steps")

        monkeypatch.undo()
        assert (await ledger.get_balance("acct-1")).heal_coin_balance == 0
        assert await _transaction_count(container, "acct-1") == 0


class TestSharedDatabase:
    """Two containers on one SQLite file behave like two server processes."""

    @pytest.fixture
    def settings_overrides(self):
        return {"ledger": {"max_attempts": 10}}

    @pytest.fixture
    async def other(self, settings, clock):
        other = ApplicationContainer.build(settings, clock)
        yield other
        await other.dispose()

    async def test_concurrent_first_reads_create_one_wallet(self, container, other):
        ledgers = [container.ledger, other.ledger] * 5
        snapshots = await asyncio.gather(*(ledger.get_balance("acct-race") for ledger in ledgers))

        assert {snapshot.heal_coin_balance for snapshot in snapshots} == {0}
        async with container.session() as session:
            count = (
                await session.execute(
                    select(func.count()).select_from(Wallet).where(Wallet.account_id == "acct-race")
                )
            ).scalar_one()
        assert count == 1

    async def test_stale_write_is_retried_with_fresh_checks(self, container, other, monkeypatch):
        await container.ledger.get_balance("acct-1")
        original = SqlWalletRepository.compare_and_set
        interleaved = []

        async def commit_elsewhere_first(self, account_id, expected_version, **values):
            if not interleaved:
                interleaved.append(expected_version)
                await other.ledger.earn(account_id, 500, "marathon")
            return await original(self, account_id, expected_version, **values)

        monkeypatch.setattr(SqlWalletRepository, "compare_and_set", commit_elsewhere_first)

        # the retry sees the other writer's 500 and the cap rejects 600 more
        with pytest.raises(CapExceeded, match="daily limit of 1000"):
            await container.ledger.earn("acct-1", 600, "cycling")

        assert interleaved == [0]
        snapshot = await container.ledger.get_balance("acct-1")
        assert snapshot.heal_coin_balance == 500
        assert await _transaction_count(container, "acct-1") == 1

    async def test_concurrent_earns_hold_balance_and_cap(self, container, other):
        await container.ledger.get_balance("acct-1")

        operations = [
            (container.ledger if index % 2 else other.ledger).earn("acct-1", amount, f"game:{index}")
            for index, amount in enumerate(range(40, 200, 10))
        ]
        results = await asyncio.gather(*operations, return_exceptions=True)

        unexpected = [
            result for result in results if isinstance(result, Exception) and not isinstance(result, CapExceeded)
        ]
        assert unexpected == []

        snapshot = await container.ledger.get_balance("acct-1")
        assert snapshot.heal_coin_balance == await _ledger_sum(container, "acct-1")
        assert snapshot.heal_coin_balance <= 1000
        assert (await container.ledger.get_limits("acct-1")).daily_earned == snapshot.heal_coin_balance
