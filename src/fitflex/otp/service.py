"""OTP service — issues and verifies phone-bound one-time passcodes."""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass

from fitflex.otp.notifier import BaseNotifier, DeliveryError
from fitflex.otp.store import OTPStore

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999
DEFAULT_TTL_SECONDS = 300  # 5 minutes

__all__ = [
    "ChallengeResult",
    "DeliveryError",
    "OTPService",
    "VerificationReason",
    "VerificationResult",
]


class VerificationReason(str, enum.Enum):
    """Why a verification attempt did not succeed."""

    NO_PENDING = "no_pending"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


_REASON_MESSAGES = {
    VerificationReason.NO_PENDING: "No OTP requested",
    VerificationReason.EXPIRED: "OTP expired",
    VerificationReason.MISMATCH: "Invalid OTP",
}


@dataclass
class ChallengeResult:
    """Outcome of :pymethod:`OTPService.request_challenge`.

    ``code`` is only populated in demo mode, when no out-of-band notifier
    is configured.
    """

    delivered: bool
    code: str | None = None
    error: DeliveryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        if self.error is not None:
            return "Failed to send OTP"
        if self.delivered:
            return "OTP sent via SMS"
        return "OTP generated (demo mode)"


@dataclass
class VerificationResult:
    """Outcome of :pymethod:`OTPService.verify_challenge`."""

    verified: bool
    reason: VerificationReason | None = None

    @property
    def message(self) -> str:
        if self.reason is None:
            return "OTP verified"
        return _REASON_MESSAGES[self.reason]


class OTPService:
    """Verification protocol built on top of an :class:`OTPStore`.

    Parameters
    ----------
    store:
        Challenge storage, normally one instance per process.
    notifier:
        Delivery capability.  A notifier with ``out_of_band = False`` puts
        the service in demo mode: codes are returned to the caller.
    ttl_seconds:
        Lifetime of each issued challenge.
    rng:
        Source of randomness for code generation.
    """

    def __init__(
        self,
        store: OTPStore,
        notifier: BaseNotifier,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._ttl = ttl_seconds
        self._rng = rng or random.SystemRandom()

    @property
    def store(self) -> OTPStore:
        return self._store

    @property
    def demo_mode(self) -> bool:
        return not self._notifier.out_of_band

    def generate_code(self) -> str:
        """Return a uniformly drawn 6-digit code."""
        return f"{self._rng.randint(CODE_MIN, CODE_MAX):06d}"

    async def request_challenge(self, subject: str) -> ChallengeResult:
        """Issue a fresh challenge for *subject*, replacing any pending one."""
        code = self.generate_code()
        self._store.put(subject, code, self._ttl)
        logger.info("OTP challenge issued for %s via %s", subject, self._notifier.name)

        message = f"Your FitFlex OTP is: {code}"
        try:
            sent = await self._notifier.send(subject, message)
        except DeliveryError as exc:
            logger.error("OTP delivery to %s failed: %s", subject, exc)
            return ChallengeResult(delivered=False, error=exc)
        except Exception as exc:
            logger.exception(
                "Unexpected error from %s notifier for %s", self._notifier.name, subject
            )
            return ChallengeResult(
                delivered=False, error=DeliveryError(subject, f"{type(exc).__name__}: {exc}")
            )

        if not sent:
            # The challenge stays valid so delivery can be retried by the client
            logger.error("OTP delivery to %s failed via %s", subject, self._notifier.name)
            return ChallengeResult(
                delivered=False,
                error=DeliveryError(subject, f"{self._notifier.name} notifier reported failure"),
            )

        if self.demo_mode:
            return ChallengeResult(delivered=False, code=code)
        return ChallengeResult(delivered=True)

    def verify_challenge(self, subject: str, submitted_code: str) -> VerificationResult:
        """Check *submitted_code* against the pending challenge for *subject*.

        A match consumes the challenge.  An expired challenge is removed and
        never matches.  A mismatch leaves the challenge in place for retry.
        """
        if self._store.consume(subject, submitted_code):
            logger.info("OTP verified for %s", subject)
            return VerificationResult(verified=True)

        if self._store.pop_if_expired(subject) is not None:
            reason = VerificationReason.EXPIRED
        elif self._store.get(subject) is None:
            reason = VerificationReason.NO_PENDING
        else:
            reason = VerificationReason.MISMATCH

        logger.info("OTP verification failed for %s: %s", subject, reason.value)
        return VerificationResult(verified=False, reason=reason)
