"""
Ordered keyword/regex rules that classify one inbound message.

Rules are evaluated top to bottom and the first rule whose predicate
holds and whose builder produces an intent wins. A builder may return
None (a capture rule that did not parse), in which case evaluation
continues with the next rule. Unrecognized is the floor, so resolution
never fails.

Usage:
    intent = resolve("my name is Asha", session)
    assert intent == NameIntroduction("Asha")
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from src.conversation.parsers import parse_demo_request, parse_name
from src.schemas.intent_schema import (
    CallbackRequest,
    DemoScheduled,
    GreetOrMenu,
    Intent,
    MenuChoice,
    NameIntroduction,
    PurchaseInterest,
    Unrecognized,
    UrgentSupport,
)
from src.schemas.session_schema import MAX_MENU_OPTION, MIN_MENU_OPTION, SessionState, SessionStep

logger = logging.getLogger(__name__)

MENU_TRIGGERS = frozenset({"hi", "hello", "start", "menu", "help", "options"})
MENU_DIGITS = frozenset(str(n) for n in range(MIN_MENU_OPTION, MAX_MENU_OPTION + 1))
PURCHASE_WORDS = frozenset({"buy", "purchase"})
URGENT_WORDS = frozenset({"urgent", "emergency"})
CALLBACK_MARKER = "call"
NAME_MARKERS = ("my name is", "i am")


@dataclass(frozen=True)
class ResolutionContext:
    """Inputs shared by every rule: normalized text, trimmed original and session."""
    text: str
    original: str
    session: SessionState


@dataclass(frozen=True)
class IntentRule:
    """A single (predicate, builder) pair in the resolution order."""
    name: str
    predicate: Callable[[ResolutionContext], bool]
    build: Callable[[ResolutionContext], Optional[Intent]]


def _build_name(ctx: ResolutionContext) -> Optional[Intent]:
    name = parse_name(ctx.original)
    return NameIntroduction(name=name) if name else None


def _build_demo(ctx: ResolutionContext) -> Optional[Intent]:
    capture = parse_demo_request(ctx.original)
    if capture is None:
        return None
    return DemoScheduled(date=capture.date, time=capture.time, name=capture.name)


INTENT_RULES: list[IntentRule] = [
    IntentRule(
        "menu_trigger",
        lambda ctx: ctx.text in MENU_TRIGGERS,
        lambda ctx: GreetOrMenu(),
    ),
    IntentRule(
        "menu_choice",
        lambda ctx: ctx.session.step == SessionStep.MENU_SENT and ctx.text in MENU_DIGITS,
        lambda ctx: MenuChoice(option=int(ctx.text)),
    ),
    IntentRule(
        "purchase",
        lambda ctx: ctx.text in PURCHASE_WORDS,
        lambda ctx: PurchaseInterest(),
    ),
    IntentRule(
        "urgent",
        lambda ctx: ctx.text in URGENT_WORDS,
        lambda ctx: UrgentSupport(),
    ),
    IntentRule(
        "callback",
        lambda ctx: CALLBACK_MARKER in ctx.text,
        lambda ctx: CallbackRequest(),
    ),
    IntentRule(
        "name_introduction",
        lambda ctx: any(marker in ctx.text for marker in NAME_MARKERS),
        _build_name,
    ),
    IntentRule(
        "demo_booking",
        lambda ctx: "-" in ctx.text and ":" in ctx.text,
        _build_demo,
    ),
    # Senders who have never seen the menu get it whatever they typed.
    IntentRule(
        "new_sender_default",
        lambda ctx: ctx.session.step == SessionStep.NEW,
        lambda ctx: GreetOrMenu(),
    ),
]


def resolve(raw_text: Optional[str], session: SessionState) -> Intent:
    """Classify a message against INTENT_RULES. Never raises."""
    original = (raw_text or "").strip()
    ctx = ResolutionContext(text=original.lower(), original=original, session=session)

    for rule in INTENT_RULES:
        if not rule.predicate(ctx):
            continue
        intent = rule.build(ctx)
        if intent is not None:
            logger.debug("Rule '%s' matched: %s", rule.name, intent)
            return intent
        logger.debug("Rule '%s' predicate held but capture failed, falling through", rule.name)

    return Unrecognized()
