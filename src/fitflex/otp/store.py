"""In-memory OTP challenge store with expiry."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Challenge:
    """A single pending OTP for one subject (phone number)."""

    subject: str
    code: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class OTPStore:
    """Thread-safe in-memory store holding at most one challenge per subject.

    Each entry maps ``subject → Challenge``.  Expired entries are not
    evaluated by :pymethod:`get`; they are reclaimed lazily by the service
    on lookup, or in bulk by :pymethod:`purge_expired`.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._challenges: dict[str, Challenge] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        """Current time according to the store's clock."""
        return self._clock()

    def put(self, subject: str, code: str, ttl: float) -> Challenge:
        """Insert or replace the challenge for *subject*, valid for *ttl* seconds."""
        challenge = Challenge(subject=subject, code=code, expires_at=self._clock() + ttl)
        with self._lock:
            replaced = subject in self._challenges
            self._challenges[subject] = challenge
        if replaced:
            logger.debug("Replaced pending challenge for %s", subject)
        return challenge

    def get(self, subject: str) -> Challenge | None:
        with self._lock:
            return self._challenges.get(subject)

    def remove(self, subject: str) -> None:
        with self._lock:
            self._challenges.pop(subject, None)

    def pop_if_expired(self, subject: str) -> Challenge | None:
        """Remove and return the challenge for *subject* if it has expired."""
        now = self._clock()
        with self._lock:
            challenge = self._challenges.get(subject)
            if challenge is None or not challenge.is_expired(now):
                return None
            del self._challenges[subject]
        return challenge

    def consume(self, subject: str, code: str) -> bool:
        """Remove the challenge for *subject* if it is live and holds *code*.

        Lookup, expiry check, comparison and removal happen under one lock,
        so a concurrent re-request cannot slip in between them.
        """
        now = self._clock()
        with self._lock:
            challenge = self._challenges.get(subject)
            if challenge is None or challenge.is_expired(now) or challenge.code != code:
                return False
            del self._challenges[subject]
        return True

    def purge_expired(self) -> int:
        """Drop every expired challenge and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [s for s, c in self._challenges.items() if c.is_expired(now)]
            for subject in expired:
                del self._challenges[subject]
        if expired:
            logger.info("Purged %d expired OTP challenge(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)
