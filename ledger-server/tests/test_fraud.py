import pytest

from healcoin_ledger.core.config import FraudSettings
from healcoin_ledger.domain.fraud import EarnContext, FraudHeuristics, LoginContext, RedeemContext
from healcoin_ledger.infrastructure.database.repositories import SqlActivityRepository, SqlWalletRepository


def _heuristics(session, clock, **overrides):
    return FraudHeuristics.with_session(session, FraudSettings(**overrides), clock)


async def _add_tx(session, account_id, created_at, *, type="earn", amount=10, source="game:quiz"):
    wallets = SqlWalletRepository(session)
    if await wallets.get_wallet(account_id) is None:
        await wallets.create_wallet(account_id, created_at)
    return await wallets.add_transaction(
        account_id=account_id,
        type=type,
        amount=amount,
        balance_delta=amount if type == "earn" else -amount,
        source=source,
        description=None,
        metadata=None,
        idempotency_key=None,
        audit_log_id=None,
        created_at=created_at,
    )


class TestSuspiciousActivity:

    async def test_clean_account_is_not_suspicious(self, container, clock):
        async with container.session() as session:
            signal = await _heuristics(session, clock).is_suspicious_activity("acct-1", EarnContext(10, "game:quiz"))
            assert signal.is_suspicious is False
            assert signal.reason is None

    async def test_velocity_flags_fifth_recent_transaction(self, container, clock):
        async with container.session() as session:
            heuristics = _heuristics(session, clock)
            for index in range(4):
                await _add_tx(session, "acct-1", clock(), amount=10 + index)
                clock.advance(seconds=2)
            assert not (await heuristics.is_suspicious_activity("acct-1", RedeemContext(5))).is_suspicious

            await _add_tx(session, "acct-1", clock(), type="redeem", amount=5)
            signal = await heuristics.is_suspicious_activity("acct-1", RedeemContext(5))
            assert signal.is_suspicious is True
            assert signal.reason == "Rapid successive transactions detected"

    async def test_velocity_window_expires(self, container, clock):
        async with container.session() as session:
            heuristics = _heuristics(session, clock)
            for index in range(5):
                await _add_tx(session, "acct-1", clock(), amount=10 + index)
            clock.advance(seconds=61)
            signal = await heuristics.is_suspicious_activity("acct-1", EarnContext(12, "game:quiz"))
            assert signal.is_suspicious is False

    async def test_outlier_amount_is_flagged(self, container, clock):
        async with container.session() as session:
            heuristics = _heuristics(session, clock)
            for amount in (10, 12, 11, 9):
                await _add_tx(session, "acct-1", clock(), amount=amount)
                clock.advance(minutes=5)

            signal = await heuristics.is_suspicious_activity("acct-1", EarnContext(500, "game:quiz"))
            assert signal.reason == "Unusual transaction amount detected"

            # above three sigma but under the floor
            signal = await heuristics.is_suspicious_activity("acct-1", EarnContext(40, "game:quiz"))
            assert signal.is_suspicious is False

    async def test_outlier_needs_history(self, container, clock):
        async with container.session() as session:
            signal = await _heuristics(session, clock).is_suspicious_activity("acct-1", EarnContext(900, "bonus"))
            assert signal.is_suspicious is False


class TestLoginScreening:

    async def test_new_device_after_three_known_devices(self, container, clock):
        async with container.session() as session:
            heuristics = _heuristics(session, clock)
            for device in ("phone", "tablet", "laptop"):
                check = await heuristics.record_login("acct-1", device)
                assert check.signal.is_suspicious is False
                clock.advance(hours=2)

            known = await heuristics.is_suspicious_activity("acct-1", LoginContext("phone"))
            assert known.is_suspicious is False

            check = await heuristics.record_login("acct-1", "desktop")
            assert check.signal.reason == "Multiple device logins detected"
            assert check.login.device_id == "desktop"

    async def test_ip_change_within_an_hour(self, container, clock):
        async with container.session() as session:
            heuristics = _heuristics(session, clock)
            await heuristics.record_login("acct-1", "phone", "10.0.0.1")

            clock.advance(minutes=30)
            check = await heuristics.record_login("acct-1", "phone", "192.168.4.7")
            assert check.signal.reason == "Geographic anomaly detected"

            clock.advance(hours=2)
            check = await heuristics.record_login("acct-1", "phone", "10.0.0.1")
            assert check.signal.is_suspicious is False

    async def test_logins_are_persisted(self, container, clock):
        async with container.session() as session:
            await _heuristics(session, clock).record_login("acct-1", "phone", "10.0.0.1")
        async with container.session() as session:
            logins = await SqlActivityRepository(session).recent_logins("acct-1", 5)
            assert [login.device_id for login in logins] == ["phone"]


class TestDuplicateChecks:

    async def test_duplicate_earning_keys_on_source_and_amount(self, container, clock):
        async with container.session() as session:
            heuristics = _heuristics(session, clock)
            await _add_tx(session, "acct-1", clock(), amount=30, source="game:quiz")
            clock.advance(seconds=20)

            assert await heuristics.is_duplicate_earning("acct-1", "game:quiz", 30) is True
            assert await heuristics.is_duplicate_earning("acct-1", "game:quiz", 40) is False
            assert await heuristics.is_duplicate_earning("acct-1", "steps", 30) is False

            clock.advance(minutes=61)
            assert await heuristics.is_duplicate_earning("acct-1", "game:quiz", 30) is False

    async def test_duplicate_redemption_per_reward(self, container, clock):
        async with container.session() as session:
            heuristics = _heuristics(session, clock)
            await _add_tx(session, "acct-1", clock(), type="redeem", amount=100, source="reward:r-1")

            assert await heuristics.is_duplicate_redemption("acct-1", "r-1") is True
            assert await heuristics.is_duplicate_redemption("acct-1", "r-2") is False

    @pytest.mark.parametrize("minutes, expected", [(59, True), (61, False)])
    async def test_duplicate_carbon_and_game_windows(self, container, clock, minutes, expected):
        async with container.session() as session:
            activity = SqlActivityRepository(session)
            await activity.add_carbon_action(account_id="acct-1", action="cycling", co2_saved=3, created_at=clock())
            await activity.add_game_submission(
                account_id="acct-1", game_id="quiz", score=80, play_time=120, created_at=clock()
            )
            clock.advance(minutes=minutes)

            heuristics = _heuristics(session, clock)
            assert await heuristics.is_duplicate_carbon_action("acct-1", "cycling") is expected
            assert await heuristics.is_duplicate_game_submission("acct-1", "quiz") is expected
            assert await heuristics.is_duplicate_carbon_action("acct-1", "walking") is False
