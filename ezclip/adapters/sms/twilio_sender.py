"""
Twilio SMS sender adapter - Implements SmsSender protocol.

The Twilio REST client is synchronous, so each send runs in a worker
thread to keep the event loop free while the provider call is in flight.
"""

import asyncio
import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from ezclip.domain.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)


class TwilioSmsSender:
    """Implements SmsSender protocol via the Twilio Messages API."""

    def __init__(self, client: TwilioClient, from_number: str) -> None:
        """
        Initialize sender.

        Args:
            client: Configured twilio.rest.Client
            from_number: Twilio phone number messages are sent from
        """
        self._client = client
        self._from_number = from_number

    @classmethod
    def from_credentials(cls, account_sid: str, auth_token: str, from_number: str) -> "TwilioSmsSender":
        client = TwilioClient(account_sid, auth_token)
        logger.info("Twilio client initialized successfully")
        return cls(client, from_number)

    async def send(self, destination: str, text: str) -> None:
        """
        Send a text message.

        Raises:
            DeliveryFailed: Twilio rejected the request or was unreachable
        """
        try:
            message = await asyncio.to_thread(
                self._client.messages.create,
                body=text,
                from_=self._from_number,
                to=destination,
            )
        except (TwilioException, OSError) as e:
            logger.error("SMS delivery to %s failed: %s", destination, e)
            raise DeliveryFailed("Failed to send verification code") from e

        logger.info("SMS sent to %s (sid=%s)", destination, message.sid)
