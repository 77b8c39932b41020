"""Shared fixtures for vincent_scaffold tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from vincent_scaffold.e2e.state_manager import StateManager
from vincent_scaffold.utils.i18n import set_language


@pytest.fixture(scope="session", autouse=True)
def _provide_event_loop() -> None:
    """Ensure a default event loop exists to satisfy global teardown hooks."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield


@pytest.fixture(autouse=True)
def _english_messages():
    set_language("en")
    yield
    set_language("en")


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def advance(self, **kwargs) -> None:
        self.moment = self.moment + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / ".e2e-state.json"


@pytest.fixture
def make_manager(state_path, clock):
    async def factory(**kwargs) -> StateManager:
        kwargs.setdefault("test_file_name", "test-e2e.py")
        kwargs.setdefault("state_path", state_path)
        kwargs.setdefault("clock", clock)
        return await StateManager.create(kwargs.pop("network", "datil"), **kwargs)

    return factory
