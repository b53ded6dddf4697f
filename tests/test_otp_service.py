"""Tests for the OTPService — issue / verify protocol."""

from __future__ import annotations

import random
from unittest.mock import AsyncMock

import pytest

from fitflex.otp.notifier import BaseNotifier, DeliveryError, DemoNotifier
from fitflex.otp.service import (
    DEFAULT_TTL_SECONDS,
    OTPService,
    VerificationReason,
)

from helpers import PHONE


class RecordingNotifier(BaseNotifier):
    """Out-of-band notifier double that records what it was asked to send."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.sent: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "recording"

    async def send(self, destination: str, message: str) -> bool:
        self.sent.append((destination, message))
        return self.result


class SequenceRandom(random.Random):
    """Returns a fixed sequence of values from ``randint``."""

    def __init__(self, values: list[int]) -> None:
        super().__init__()
        self._values = iter(values)

    def randint(self, a: int, b: int) -> int:
        return next(self._values)


# ──────────────────────────────────────────────────────────
# Code generation
# ──────────────────────────────────────────────────────────
def test_generated_codes_are_six_digits_and_spread(demo_service: OTPService):
    codes = [demo_service.generate_code() for _ in range(5000)]
    values = [int(c) for c in codes]

    assert all(len(c) == 6 and c.isascii() and c.isdigit() for c in codes)
    assert all(100000 <= v <= 999999 for v in values)

    # Every leading digit 1-9 should be hit with roughly equal frequency
    buckets = {d: 0 for d in "123456789"}
    for c in codes:
        buckets[c[0]] += 1
    expected = len(codes) / 9
    assert all(abs(n - expected) < expected * 0.3 for n in buckets.values())
    assert abs(sum(values) / len(values) - 549999.5) < 20000


def test_generate_code_uses_injected_rng(store):
    service = OTPService(store, DemoNotifier(), rng=random.Random(42))
    again = OTPService(store, DemoNotifier(), rng=random.Random(42))
    assert service.generate_code() == again.generate_code()


# ──────────────────────────────────────────────────────────
# Demo mode
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_demo_mode_discloses_code(demo_service: OTPService, store, clock):
    result = await demo_service.request_challenge(PHONE)

    assert result.ok
    assert result.delivered is False
    assert result.code is not None and len(result.code) == 6
    assert result.message == "OTP generated (demo mode)"
    assert store.get(PHONE).code == result.code
    assert store.get(PHONE).expires_at == clock.now + DEFAULT_TTL_SECONDS


@pytest.mark.asyncio
async def test_verify_succeeds_exactly_once(demo_service: OTPService):
    result = await demo_service.request_challenge(PHONE)

    first = demo_service.verify_challenge(PHONE, result.code)
    assert first.verified is True
    assert first.reason is None
    assert first.message == "OTP verified"

    second = demo_service.verify_challenge(PHONE, result.code)
    assert second.verified is False
    assert second.reason == VerificationReason.NO_PENDING


def test_verify_without_request(demo_service: OTPService):
    result = demo_service.verify_challenge(PHONE, "123456")
    assert result.verified is False
    assert result.reason == VerificationReason.NO_PENDING
    assert result.message == "No OTP requested"


@pytest.mark.asyncio
async def test_mismatch_keeps_challenge(demo_service: OTPService):
    result = await demo_service.request_challenge(PHONE)
    wrong = "000000" if result.code != "000000" else "111111"

    failed = demo_service.verify_challenge(PHONE, wrong)
    assert failed.verified is False
    assert failed.reason == VerificationReason.MISMATCH
    assert failed.message == "Invalid OTP"

    assert demo_service.verify_challenge(PHONE, result.code).verified is True


@pytest.mark.asyncio
async def test_expired_even_with_correct_code(demo_service: OTPService, store, clock):
    result = await demo_service.request_challenge(PHONE)
    clock.advance(DEFAULT_TTL_SECONDS + 1)

    expired = demo_service.verify_challenge(PHONE, result.code)
    assert expired.verified is False
    assert expired.reason == VerificationReason.EXPIRED
    assert expired.message == "OTP expired"
    assert store.get(PHONE) is None

    again = demo_service.verify_challenge(PHONE, result.code)
    assert again.reason == VerificationReason.NO_PENDING


@pytest.mark.asyncio
async def test_expired_with_wrong_code_reports_expired(demo_service: OTPService, store, clock):
    await demo_service.request_challenge(PHONE)
    clock.advance(DEFAULT_TTL_SECONDS + 1)

    result = demo_service.verify_challenge(PHONE, "not-a-code")
    assert result.reason == VerificationReason.EXPIRED
    assert store.get(PHONE) is None


@pytest.mark.asyncio
async def test_custom_ttl(store, clock):
    service = OTPService(store, DemoNotifier(), ttl_seconds=10)
    result = await service.request_challenge(PHONE)
    clock.advance(11)
    assert service.verify_challenge(PHONE, result.code).reason == VerificationReason.EXPIRED


@pytest.mark.asyncio
async def test_rerequest_invalidates_first_code(store):
    service = OTPService(store, DemoNotifier(), rng=SequenceRandom([123456, 654321]))

    first = await service.request_challenge(PHONE)
    second = await service.request_challenge(PHONE)
    assert (first.code, second.code) == ("123456", "654321")

    stale = service.verify_challenge(PHONE, first.code)
    assert stale.verified is False
    assert stale.reason == VerificationReason.MISMATCH
    assert service.verify_challenge(PHONE, second.code).verified is True


@pytest.mark.asyncio
async def test_subjects_are_independent(demo_service: OTPService):
    alice = await demo_service.request_challenge("+15551234567")
    bob = await demo_service.request_challenge("+442071234567")

    assert demo_service.verify_challenge("+442071234567", bob.code).verified is True
    assert demo_service.verify_challenge("+15551234567", alice.code).verified is True


# ──────────────────────────────────────────────────────────
# Out-of-band delivery
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_delivered_result_hides_code(store):
    notifier = RecordingNotifier()
    service = OTPService(store, notifier)

    result = await service.request_challenge(PHONE)

    assert result.ok
    assert result.delivered is True
    assert result.code is None
    assert result.message == "OTP sent via SMS"

    stored = store.get(PHONE)
    assert notifier.sent == [(PHONE, f"Your FitFlex OTP is: {stored.code}")]
    assert service.verify_challenge(PHONE, stored.code).verified is True


@pytest.mark.asyncio
async def test_delivery_failure_keeps_challenge(store):
    service = OTPService(store, RecordingNotifier(result=False))

    result = await service.request_challenge(PHONE)

    assert not result.ok
    assert result.delivered is False
    assert result.code is None
    assert isinstance(result.error, DeliveryError)
    assert result.error.destination == PHONE
    assert result.message == "Failed to send OTP"

    stored = store.get(PHONE)
    assert stored is not None
    assert service.verify_challenge(PHONE, stored.code).verified is True


@pytest.mark.asyncio
async def test_notifier_raising_delivery_error(store):
    notifier = RecordingNotifier()
    notifier.send = AsyncMock(side_effect=DeliveryError(PHONE, "provider down"))
    service = OTPService(store, notifier)

    result = await service.request_challenge(PHONE)

    assert not result.ok
    assert result.error.detail == "provider down"
    assert store.get(PHONE) is not None
    notifier.send.assert_awaited_once()


@pytest.mark.asyncio
async def test_unexpected_notifier_error_becomes_failed_result(store):
    notifier = RecordingNotifier()
    notifier.send = AsyncMock(side_effect=RuntimeError("socket closed"))
    service = OTPService(store, notifier)

    result = await service.request_challenge(PHONE)

    assert not result.ok
    assert result.delivered is False
    assert isinstance(result.error, DeliveryError)
    assert "RuntimeError" in result.error.detail
    assert result.message == "Failed to send OTP"
    assert store.get(PHONE) is not None
