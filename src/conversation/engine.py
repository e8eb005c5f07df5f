"""
Session engine: one call per inbound message.

Loads the sender's session, resolves the intent, decides the transition
and then performs the side effects in a fixed order:

    1. persist the next state   (failure drops the message)
    2. send the reply           (failure is logged, not retried)
    3. record the lead event    (failure is logged and ignored)

State is written before the reply goes out, so a crash between the two
costs a missed reply rather than a repeated transition. Messages from
the same sender are serialized; different senders run concurrently.

Usage:
    async with SessionEngine(store, transport, sink) as engine:
        result = await engine.handle("whatsapp:+919876543210", "hi")
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from src.config import settings
from src.conversation.intent_resolver import resolve
from src.conversation.state_machine import HandleResult, SessionStateMachine
from src.logging_context import get_sender_logger, reset_sender_id, set_sender_id
from src.schemas.session_schema import SessionState
from src.tools.event_sink import EventSink, SinkUnavailable
from src.tools.session_store import SessionStore, StoreUnavailable
from src.tools.transport import DeliveryError, MessageTransport

logger = get_sender_logger(__name__)

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EngineClosedError(Exception):
    """Raised when a message arrives after shutdown has started."""


class SessionEngine:
    """Owns the per-sender state machine and its side effects."""

    def __init__(
        self,
        store: SessionStore,
        transport: MessageTransport,
        sink: EventSink,
        state_machine: Optional[SessionStateMachine] = None,
        io_timeout_sec: float = settings.responder.io_timeout_sec,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._transport = transport
        self._sink = sink
        self._state_machine = state_machine or SessionStateMachine()
        self._io_timeout = io_timeout_sec
        self._clock = clock

        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._accepting = True

    @property
    def accepting(self) -> bool:
        return self._accepting

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def __aenter__(self) -> "SessionEngine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def handle(self, sender: str, raw_text: Optional[str]) -> Optional[HandleResult]:
        """
        Handle one inbound message.

        Returns:
            The computed result, or None if the message was dropped
            because the session store was unavailable.

        Raises:
            EngineClosedError: If shutdown has started.
        """
        if not self._accepting:
            raise EngineClosedError("Session engine is shutting down")

        self._in_flight += 1
        self._idle.clear()
        token = set_sender_id(sender)
        try:
            async with self._sender_lock(sender):
                return await self._handle_locked(sender, raw_text or "")
        finally:
            reset_sender_id(token)
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    async def shutdown(self) -> None:
        """Stop accepting messages and wait for in-flight handling to finish."""
        self._accepting = False
        await self._idle.wait()
        logger.info("Session engine drained")

    async def aclose(self) -> None:
        """Drain, then release transport, store and sink."""
        try:
            await self.shutdown()
        finally:
            try:
                await self._transport.close()
            finally:
                try:
                    await self._store.close()
                finally:
                    await self._sink.close()

    @asynccontextmanager
    async def _sender_lock(self, sender: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(sender, asyncio.Lock())
        self._lock_holders[sender] = self._lock_holders.get(sender, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[sender] -= 1
            if self._lock_holders[sender] == 0:
                del self._lock_holders[sender]
                del self._locks[sender]

    async def _io(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._io_timeout)

    async def _handle_locked(self, sender: str, raw_text: str) -> Optional[HandleResult]:
        now = self._clock()

        try:
            stored = await self._io(self._store.get(sender))
        except (StoreUnavailable, asyncio.TimeoutError) as exc:
            logger.error("Dropping message, session load failed: %r", exc)
            return None

        session = stored or SessionState.first_contact(now)
        if stored is None:
            logger.info("New sender, session created")

        intent = resolve(raw_text, session)
        result = self._state_machine.decide(session, intent, sender, raw_text, now)

        try:
            await self._io(self._store.put(sender, result.next_state))
        except (StoreUnavailable, asyncio.TimeoutError) as exc:
            logger.error("Dropping message, session save failed: %r", exc)
            return None

        try:
            await self._io(self._transport.send(sender, result.reply))
        except (DeliveryError, asyncio.TimeoutError) as exc:
            logger.error("Reply not delivered (state already saved): %r", exc)

        try:
            await self._io(self._sink.record(result.event))
        except (SinkUnavailable, asyncio.TimeoutError) as exc:
            logger.warning("Lead event not recorded: %r", exc)

        return result
