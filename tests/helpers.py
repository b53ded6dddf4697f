"""Constants and doubles shared by the test modules."""

from __future__ import annotations

PHONE = "+15551234567"


class FakeClock:
    """Manually advanced clock so expiry can be tested without sleeping."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
