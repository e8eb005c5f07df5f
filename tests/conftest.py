"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from src.conversation.engine import SessionEngine
from src.conversation.state_machine import SessionStateMachine
from src.schemas.session_schema import SessionState, SessionStep
from src.tools.event_sink import InMemoryEventSink
from src.tools.session_store import InMemorySessionStore
from src.tools.transport import RecordingTransport

SENDER = "whatsapp:+919876543210"
OTHER_SENDER = "whatsapp:+919812345678"
JOINED_AT = datetime(2025, 9, 20, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that advances one minute per call."""

    def __init__(self, start: datetime = JOINED_AT) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(minutes=1)
        return value


def make_session(
    step: SessionStep = SessionStep.NEW,
    selected_option: Optional[int] = None,
    display_name: Optional[str] = None,
    last_choice: Optional[int] = None,
    joined_at: datetime = JOINED_AT,
    last_active_at: Optional[datetime] = None,
) -> SessionState:
    """Helper to create a SessionState with sensible defaults."""
    if step == SessionStep.OPTION_SELECTED and selected_option is None:
        selected_option = last_choice or 1
    return SessionState(
        step=step,
        selected_option=selected_option,
        display_name=display_name,
        last_choice=last_choice,
        joined_at=joined_at,
        last_active_at=last_active_at or joined_at,
    )


@pytest.fixture
def state_machine():
    return SessionStateMachine()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def sink():
    return InMemoryEventSink()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(store, transport, sink, clock):
    return SessionEngine(store, transport, sink, io_timeout_sec=1.0, clock=clock)
