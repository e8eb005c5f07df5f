"""
Chat transport adapters and the inbound message filter.

In production replies go out through Twilio's WhatsApp API. The
recording transport keeps an outbox in memory for tests and the console
demo. Group chats and status broadcasts are dropped here, before any
message reaches the session engine.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

import requests
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from src.schemas.event_schema import InboundMessage
from src.utils import WHATSAPP_PREFIX, display_number, is_group_sender, is_status_sender

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeliveryError(Exception):
    """Raised when a reply could not be handed to the transport."""


class MessageTransport(Protocol):
    async def send(self, recipient: str, text: str) -> None: ...

    async def close(self) -> None: ...


class RecordingTransport:
    """Collects outbound messages instead of delivering them."""

    def __init__(self) -> None:
        self.outbox: list[tuple[str, str]] = []
        self.connected = True

    async def send(self, recipient: str, text: str) -> None:
        if not self.connected:
            raise DeliveryError(f"Transport disconnected, cannot reach {recipient}")
        self.outbox.append((recipient, text))

    async def close(self) -> None:
        self.connected = False

    def replies_to(self, recipient: str) -> list[str]:
        return [text for to, text in self.outbox if to == recipient]


class TwilioWhatsAppTransport:
    """Sends WhatsApp replies through the Twilio REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: Optional[Client] = None,
    ) -> None:
        if not from_number:
            raise ValueError("TWILIO_WHATSAPP_FROM is required for the Twilio transport")
        self._client = client or Client(account_sid, auth_token)
        self._from = _as_whatsapp_address(from_number)
        self._connected = True

    async def send(self, recipient: str, text: str) -> None:
        if not self._connected:
            raise DeliveryError(f"Transport disconnected, cannot reach {recipient}")
        to = _as_whatsapp_address(recipient)
        try:
            message = await asyncio.to_thread(
                self._client.messages.create, from_=self._from, to=to, body=text,
            )
        except TwilioException as exc:
            raise DeliveryError(f"Twilio rejected message to {to}: {exc}") from exc
        except requests.RequestException as exc:
            raise DeliveryError(f"Twilio unreachable for message to {to}: {exc}") from exc
        logger.info("Reply queued to %s (sid=%s, status=%s)", to, message.sid, message.status)

    async def close(self) -> None:
        self._connected = False
        logger.info("Twilio transport disconnected")


def _as_whatsapp_address(value: str) -> str:
    if value.startswith(WHATSAPP_PREFIX):
        return value
    return f"{WHATSAPP_PREFIX}{display_number(value)}"


def should_ignore(message: InboundMessage) -> bool:
    """True for group conversations and status updates."""
    return (
        message.is_group
        or message.is_status
        or is_group_sender(message.sender)
        or is_status_sender(message.sender)
    )


async def dispatch_inbound(
    message: InboundMessage,
    handler: Callable[[str, str], Awaitable[T]],
) -> Optional[T]:
    """Filter an inbound message and pass direct chats to the handler."""
    if should_ignore(message):
        logger.debug("Ignoring group/status message from %s", message.sender)
        return None
    logger.info("Message from %s: %s", display_number(message.sender), message.text)
    return await handler(message.sender, message.text)
