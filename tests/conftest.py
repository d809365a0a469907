"""Shared fixtures for the OTP engine tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from leadflow_otp.otp.manager import ChallengeManager
from leadflow_otp.otp.store import ChallengeStore


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> ChallengeStore:
    return ChallengeStore()


@pytest.fixture
def sender():
    """Mocked message sender — never actually sends emails."""
    mock = AsyncMock()
    mock.send.return_value = True
    return mock


@pytest.fixture
def manager(store, sender, clock) -> ChallengeManager:
    return ChallengeManager(
        store,
        sender,
        ttl=timedelta(minutes=10),
        max_attempts=3,
        dispatch_timeout=1.0,
        clock=clock,
        app_name="LeadsFlow",
    )
