"""Notifiers — out-of-band delivery of OTP codes to a subject."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from fitflex.config import Settings

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised (or reported) when a notifier fails to deliver a message."""

    def __init__(self, destination: str, detail: str = "delivery failed") -> None:
        super().__init__(f"Could not deliver message to {destination}: {detail}")
        self.destination = destination
        self.detail = detail


class BaseNotifier(ABC):
    """Abstract delivery capability used by the OTP service.

    ``out_of_band`` tells the service whether the code reaches the user
    through this notifier.  When it is ``False`` the service discloses the
    code directly in its result instead.
    """

    out_of_band: bool = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable notifier name (used in logs)."""

    @abstractmethod
    async def send(self, destination: str, message: str) -> bool:
        """Deliver *message* to *destination*; return ``True`` on success."""


class DemoNotifier(BaseNotifier):
    """Development-mode notifier: nothing leaves the process.

    The message is only logged, and the service hands the code back to the
    caller so the registration flow can be exercised without an SMS provider.
    """

    out_of_band = False

    @property
    def name(self) -> str:
        return "demo"

    async def send(self, destination: str, message: str) -> bool:
        logger.info("[DEMO MODE] %s → %s", destination, message)
        return True


class TwilioSMSNotifier(BaseNotifier):
    """Sends SMS through the Twilio Messages REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        *,
        base_url: str = "https://api.twilio.com",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not (account_sid and auth_token and from_number):
            raise ValueError(
                "Twilio notifier needs an account SID, auth token and sender number"
            )
        self._account_sid = account_sid
        self._auth = (account_sid, auth_token)
        self._from_number = from_number
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def name(self) -> str:
        return "twilio"

    async def send(self, destination: str, message: str) -> bool:
        url = f"{self._base_url}/2010-04-01/Accounts/{self._account_sid}/Messages.json"
        payload = {"From": self._from_number, "To": destination, "Body": message}
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(url, data=payload, auth=self._auth)
        except httpx.HTTPError as exc:
            logger.exception("Twilio request error for %s: %s", destination, exc)
            return False

        if resp.is_success:
            logger.info("SMS sent to %s (status %s)", destination, resp.status_code)
            return True
        logger.error(
            "Twilio rejected SMS to %s: %s %s", destination, resp.status_code, resp.text
        )
        return False


def build_notifier(config: Settings) -> BaseNotifier:
    """Pick the notifier implementation from configuration."""
    if config.use_twilio:
        return TwilioSMSNotifier(
            config.twilio_account_sid,
            config.twilio_auth_token,
            config.twilio_phone_number,
            base_url=config.twilio_api_base_url,
        )
    return DemoNotifier()
