"""
Client for the Twilio telephony provider.

Covers the REST operations the assistant performs itself: placing the outbound
callback call, sending the confirmation SMS and downloading call recordings.
The Twilio REST client is synchronous, so its calls run in a worker thread to
keep the event loop free for other connections.
"""

import asyncio
import logging
from typing import Optional, Tuple

import httpx
from twilio.rest import Client

from telehealth.config.constants import LOGGER_NAME, RECORDING_FETCH_TIMEOUT
from telehealth.config.settings import Settings
from telehealth.services.retry import (
    DEFAULT_POLICY,
    RetryPolicy,
    retry_with_exponential_backoff,
)

logger = logging.getLogger(LOGGER_NAME)


class TelephonyClient:
    """Outbound calls, SMS and recording downloads via Twilio."""

    def __init__(
        self,
        client: Client,
        from_number: str,
        http: Optional[httpx.AsyncClient] = None,
        auth: Optional[Tuple[str, str]] = None,
        retry_policy: RetryPolicy = DEFAULT_POLICY,
    ):
        self.client = client
        self.from_number = from_number
        self.http = http or httpx.AsyncClient(
            timeout=RECORDING_FETCH_TIMEOUT, follow_redirects=True
        )
        self.auth = auth
        self.retry_policy = retry_policy

    @classmethod
    def from_settings(
        cls, settings: Settings, retry_policy: RetryPolicy = DEFAULT_POLICY
    ) -> "TelephonyClient":
        """Create a client from process settings.

        Raises:
            ValueError: If the Twilio credentials or phone number are missing
        """
        if not settings.twilio_configured:
            raise ValueError(
                "TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER must be set"
            )
        return cls(
            Client(settings.twilio_account_sid, settings.twilio_auth_token),
            settings.twilio_phone_number,
            auth=(settings.twilio_account_sid, settings.twilio_auth_token),
            retry_policy=retry_policy,
        )

    async def create_call(self, to: str, url: str) -> str:
        """
        Place an outbound call whose TwiML is served from ``url``.

        Args:
            to: Destination phone number (E.164)
            url: Webhook Twilio requests when the call is answered

        Returns:
            str: The call SID
        """

        async def _request():
            return await asyncio.to_thread(
                self.client.calls.create, url=url, to=to, from_=self.from_number
            )

        call = await retry_with_exponential_backoff(_request, policy=self.retry_policy)
        logger.info(f"Initiated call to {to}, call SID: {call.sid}")
        return call.sid

    async def send_sms(self, to: str, body: str) -> str:
        """Send a text message from the configured number. Not retried."""
        message = await asyncio.to_thread(
            self.client.messages.create, body=body, from_=self.from_number, to=to
        )
        logger.info(f"Sent SMS to {to}, message SID: {message.sid}")
        return message.sid

    async def fetch_recording(self, url: str) -> bytes:
        """
        Download a call recording.

        Args:
            url: The RecordingUrl posted by Twilio

        Returns:
            bytes: The recording audio

        Raises:
            httpx.HTTPStatusError: If Twilio answers with an error status
        """

        async def _request() -> bytes:
            response = await self.http.get(url, auth=self.auth)
            response.raise_for_status()
            return response.content

        audio = await retry_with_exponential_backoff(_request, policy=self.retry_policy)
        logger.info(f"Fetched recording ({len(audio)} bytes)")
        return audio

    async def close(self) -> None:
        await self.http.aclose()
