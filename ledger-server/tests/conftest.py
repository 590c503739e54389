"""Shared fixtures: a file-backed SQLite ledger per test and a controllable clock."""

from datetime import datetime, timedelta, timezone

import pytest

from healcoin_ledger.core.config import Settings
from healcoin_ledger.core.container import ApplicationContainer
from healcoin_ledger.infrastructure.database.repositories import SqlRewardRepository


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings_overrides():
    """Per-module hook for tweaking settings sections."""
    return {}


@pytest.fixture
def settings(tmp_path, settings_overrides):
    values = {
        "environment": "test",
        "database": {"url": f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"},
        "ledger": {"base_delay": 0.001, "max_delay": 0.01},
    }
    for section, overrides in settings_overrides.items():
        values[section] = {**values.get(section, {}), **overrides}
    return Settings(_env_file=None, **values)


@pytest.fixture
async def container(settings, clock):
    container = ApplicationContainer.build(settings, clock)
    await container.init_infrastructure()
    yield container
    await container.dispose()


@pytest.fixture
def ledger(container):
    return container.ledger


@pytest.fixture
def make_reward(container):
    async def _make(cost: int = 100, stock: int = 5, is_active: bool = True, name: str = "Yoga class") -> str:
        async with container.session() as session:
            reward = await SqlRewardRepository(session).create_reward(
                name=name,
                heal_coins_cost=cost,
                stock=stock,
                is_active=is_active,
            )
            return reward.id

    return _make
