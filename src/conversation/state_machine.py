"""
Transition table for the scripted WhatsApp conversation.

Maps (current step, resolved intent) to the reply text, the next session
state and the lead-log event. Every transition is declared explicitly in
TRANSITIONS; an intent with no transition from the current step (or a
menu choice outside the catalog) is rejected and answered with the
invalid-choice reply, leaving the session untouched.

Usage:
    sm = SessionStateMachine()
    result = sm.decide(session, MenuChoice(2), sender, "2", now)
    assert result.next_state.step == SessionStep.OPTION_SELECTED
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from src.prompts import reply_templates
from src.schemas.event_schema import LogEvent, StatusTag
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
from src.schemas.session_schema import SessionState, SessionStep
from src.tools.catalog import get_menu_option, is_valid_option

logger = logging.getLogger(__name__)

ANY_STEP = frozenset(SessionStep)


@dataclass(frozen=True)
class Effect:
    """What a transition does before the status tag and timestamp are attached."""
    reply: str
    next_state: SessionState
    choice_label: str
    detail_message: str
    lead_name: Optional[str] = None


@dataclass(frozen=True)
class HandleResult:
    """Reply, next state and event computed for one inbound message."""
    reply: str
    next_state: SessionState
    event: LogEvent


@dataclass(frozen=True)
class Transition:
    """A single valid transition: which intent, from which steps, with which tag."""
    intent_type: type
    from_steps: frozenset
    status_tag: StatusTag
    apply: Callable[[SessionState, Intent, str, str, datetime], Effect]


class InvalidTransitionError(Exception):
    """Raised when an intent cannot be applied from the current step."""


def _touch(state: SessionState, now: datetime, **updates) -> SessionState:
    return state.model_copy(update={"last_active_at": now, **updates})


def _greet(state, intent, sender, raw_text, now) -> Effect:
    return Effect(
        reply=reply_templates.build_main_menu(),
        next_state=_touch(state, now, step=SessionStep.MENU_SENT, selected_option=None),
        choice_label="Main Menu Sent",
        detail_message="User received main menu",
    )


def _select_option(state, intent, sender, raw_text, now) -> Effect:
    option = intent.option
    entry = get_menu_option(option)
    reply = reply_templates.build_option_reply(option)
    if not is_valid_option(option) or entry is None or reply is None:
        raise InvalidTransitionError(f"Menu option {option!r} is not in the catalog")
    return Effect(
        reply=reply,
        next_state=_touch(
            state, now,
            step=SessionStep.OPTION_SELECTED,
            selected_option=option,
            last_choice=option,
        ),
        choice_label=entry["log_choice"],
        detail_message=f"User selected option {option}",
    )


def _purchase(state, intent, sender, raw_text, now) -> Effect:
    return Effect(
        reply=reply_templates.build_purchase_reply(),
        next_state=_touch(state, now),
        choice_label="Purchase Intent",
        detail_message="User wants to buy",
    )


def _urgent(state, intent, sender, raw_text, now) -> Effect:
    return Effect(
        reply=reply_templates.build_urgent_reply(sender),
        next_state=_touch(state, now),
        choice_label="Urgent Support",
        detail_message="User needs immediate help",
    )


def _callback(state, intent, sender, raw_text, now) -> Effect:
    return Effect(
        reply=reply_templates.build_callback_reply(sender),
        next_state=_touch(state, now),
        choice_label="Callback Requested",
        detail_message="User wants a callback",
    )


def _introduce(state, intent, sender, raw_text, now) -> Effect:
    return Effect(
        reply=reply_templates.build_name_greeting(intent.name),
        next_state=_touch(state, now, display_name=intent.name),
        choice_label="Name Provided",
        detail_message=f"User introduced as {intent.name}",
    )


def _book_demo(state, intent, sender, raw_text, now) -> Effect:
    return Effect(
        reply=reply_templates.build_demo_confirmation(intent.date, intent.time, intent.name),
        next_state=_touch(state, now),
        choice_label="Demo Scheduled",
        detail_message=f"Demo: {intent.date} at {intent.time}",
        lead_name=intent.name,
    )


def _fallback(state, intent, sender, raw_text, now) -> Effect:
    return Effect(
        reply=reply_templates.build_fallback_reply(),
        next_state=_touch(state, now),
        choice_label="Unknown Input",
        detail_message=raw_text.strip(),
    )


class SessionStateMachine:
    """
    Deterministic, side-effect free decision step of the session engine.

    Given the stored session and a resolved intent it produces the reply,
    the next session state and the event to log. Persistence and delivery
    are left to the caller.
    """

    TRANSITIONS: list[Transition] = [
        # --- Menu ---
        Transition(GreetOrMenu, ANY_STEP, StatusTag.ENGAGED, _greet),
        Transition(MenuChoice, frozenset({SessionStep.MENU_SENT}),
                   StatusTag.INTERESTED, _select_option),

        # --- Free-text follow-ups, step unchanged ---
        Transition(PurchaseInterest, ANY_STEP, StatusTag.HOT_LEAD, _purchase),
        Transition(UrgentSupport, ANY_STEP, StatusTag.PRIORITY, _urgent),
        Transition(CallbackRequest, ANY_STEP, StatusTag.CALL_BACK, _callback),
        Transition(NameIntroduction, ANY_STEP, StatusTag.QUALIFIED_LEAD, _introduce),
        Transition(DemoScheduled, ANY_STEP, StatusTag.DEMO_BOOKED, _book_demo),

        # --- Fallback ---
        Transition(Unrecognized, ANY_STEP, StatusTag.NEEDS_HELP, _fallback),
    ]

    def find_transition(self, step: SessionStep, intent: Intent) -> Transition:
        """
        Look up the transition for an intent from the given step.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if isinstance(intent, t.intent_type) and step in t.from_steps:
                return t
        valid = [t.intent_type.__name__ for t in self.get_valid_transitions(step)]
        raise InvalidTransitionError(
            f"No valid transition from '{step.value}' for intent "
            f"'{type(intent).__name__}'. Valid intents: {valid}"
        )

    def get_valid_transitions(self, step: SessionStep) -> list[Transition]:
        """Return all transitions valid from the given step."""
        return [t for t in self.TRANSITIONS if step in t.from_steps]

    def decide(
        self,
        state: SessionState,
        intent: Intent,
        sender: str,
        raw_text: str,
        now: datetime,
    ) -> HandleResult:
        """Compute the reply, next state and event for one resolved intent."""
        try:
            transition = self.find_transition(state.step, intent)
            effect = transition.apply(state, intent, sender, raw_text, now)
        except InvalidTransitionError as exc:
            logger.warning("Rejected intent: %s", exc)
            return self._reject(state, sender, raw_text, now)

        logger.debug(
            "Session transition: %s -> %s (intent: %s)",
            state.step_label, effect.next_state.step_label, type(intent).__name__,
        )
        event = LogEvent(
            sender=sender,
            display_name=effect.lead_name or effect.next_state.display_name,
            choice_label=effect.choice_label,
            detail_message=effect.detail_message,
            status_tag=transition.status_tag,
            timestamp=now,
        )
        return HandleResult(reply=effect.reply, next_state=effect.next_state, event=event)

    def _reject(self, state: SessionState, sender: str, raw_text: str, now: datetime) -> HandleResult:
        event = LogEvent(
            sender=sender,
            display_name=state.display_name,
            choice_label="Invalid Choice",
            detail_message=f"Rejected input: {raw_text.strip()}",
            status_tag=StatusTag.NEEDS_HELP,
            timestamp=now,
        )
        return HandleResult(
            reply=reply_templates.build_invalid_choice_reply(),
            next_state=state,
            event=event,
        )
