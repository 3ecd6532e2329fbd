import logging
from typing import Optional, Protocol

import httpx

from .settings import Settings, get_settings


logger = logging.getLogger("travelbuddy.sms")

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class SmsError(Exception):
    pass


class SmsSender(Protocol):
    def send(self, to: str, body: str) -> None:
        ...


class TwilioSmsSender:
    """Sends text messages through Twilio's REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self._client = client
        self._timeout = timeout

    def send(self, to: str, body: str) -> None:
        url = f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"
        data = {"To": to, "From": self.from_number, "Body": body}
        auth = (self.account_sid, self.auth_token)
        try:
            if self._client is not None:
                response = self._client.post(url, data=data, auth=auth, timeout=self._timeout)
            else:
                with httpx.Client() as client:
                    response = client.post(url, data=data, auth=auth, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise SmsError(f"SMS request failed: {exc}") from exc

        if response.status_code not in (200, 201):
            raise SmsError(f"SMS provider answered {response.status_code}: {response.text}")
        logger.info("Sent SMS %s to %s", response.json().get("sid"), to)


class LoggingSmsSender:
    """Local development sender: the message only ends up in the log."""

    def send(self, to: str, body: str) -> None:
        logger.warning("Twilio not configured, SMS to %s: %s", to, body)


def build_sms_sender(settings: Settings) -> SmsSender:
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_FROM_NUMBER:
        return TwilioSmsSender(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            settings.TWILIO_FROM_NUMBER,
        )
    return LoggingSmsSender()


def get_sms_sender() -> SmsSender:
    return build_sms_sender(get_settings())
