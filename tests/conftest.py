"""Shared fixtures for the OTP test suite."""

from __future__ import annotations

import pytest

from fitflex.otp.notifier import DemoNotifier
from fitflex.otp.service import OTPService
from fitflex.otp.store import OTPStore

from helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> OTPStore:
    """A fresh store per test, driven by the fake clock."""
    return OTPStore(clock=clock)


@pytest.fixture
def demo_service(store: OTPStore) -> OTPService:
    return OTPService(store, DemoNotifier())
