"""
Message channel between the engine and the outside world.

``ContentEngine`` is the one object a host creates per page: it answers
action-tagged requests (``getProduct``, ``__ping__``) and pushes
``productUpdated`` notifications through a channel. Delivery is
best-effort; a channel with no receiver never raises into the engine.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from assembler import build_product
from config import ACTION_GET_PRODUCT, ACTION_PING, ACTION_PRODUCT_UPDATED, DEBOUNCE_SECONDS
from models import ExtractResponse, ProductRecord
from session import PageSession
from watcher import ChangeDetector

logger = logging.getLogger(__name__)


class ChannelClosedError(Exception):
    """Nobody is listening on the other end of the channel."""


class Channel(Protocol):
    def send(self, message: dict[str, Any]) -> None: ...


@dataclass
class SendResult:
    delivered: bool
    error: str | None = None


def deliver(channel: Channel, message: dict[str, Any]) -> SendResult:
    """Send without raising; a missing receiver is logged and dropped."""
    try:
        channel.send(message)
    except ChannelClosedError as e:
        logger.debug(f"Dropped {message.get('action')} message: {e}")
        return SendResult(delivered=False, error=str(e) or "no receiver")
    return SendResult(delivered=True)


class QueueChannel:
    """Channel backed by an asyncio.Queue, drained by a transport (e.g. a WebSocket)."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.closed = False

    def send(self, message: dict[str, Any]) -> None:
        if self.closed:
            raise ChannelClosedError("channel closed")
        self.queue.put_nowait(message)

    def close(self) -> None:
        self.closed = True


def extract_response(session: PageSession) -> ExtractResponse:
    """Answer an on-demand extraction; failures become ``ok=False``."""
    try:
        product = build_product(session.snapshot())
    except Exception as e:
        logger.debug(f"On-demand extraction failed for {session.url}", exc_info=True)
        return ExtractResponse(ok=False, error=str(e) or e.__class__.__name__)
    return ExtractResponse(ok=True, product=product)


class ContentEngine:
    """Extraction engine bound to one page."""

    def __init__(self, session: PageSession, channel: Channel, delay: float = DEBOUNCE_SECONDS):
        self.session = session
        self.channel = channel
        self.detector = ChangeDetector(session, self._publish, delay=delay)
        self._started = False

    def start(self) -> None:
        """Install hooks and run the initial pass. Safe to call more than once."""
        if self._started:
            return
        self._started = True
        self.detector.attach()
        self.detector.on_load()

    def _publish(self, product: ProductRecord) -> None:
        deliver(self.channel, {"action": ACTION_PRODUCT_UPDATED, "product": product.model_dump()})

    def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Answer an action-tagged request; unknown messages get no answer."""
        if not isinstance(message, dict):
            return None
        action = message.get("action")
        if action == ACTION_PING:
            return {"ok": True}
        if action == ACTION_GET_PRODUCT:
            response = extract_response(self.session)
            if response.ok and response.product is not None:
                return {"ok": True, "product": response.product.model_dump()}
            return {"ok": False, "error": response.error}
        return None
