from src.conversation.engine import EngineClosedError, SessionEngine
from src.conversation.intent_resolver import INTENT_RULES, resolve
from src.conversation.state_machine import (
    HandleResult,
    InvalidTransitionError,
    SessionStateMachine,
)

__all__ = [
    "SessionEngine",
    "EngineClosedError",
    "SessionStateMachine",
    "HandleResult",
    "InvalidTransitionError",
    "INTENT_RULES",
    "resolve",
]
