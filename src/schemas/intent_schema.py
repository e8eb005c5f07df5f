"""Resolved intents, one per inbound message."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class GreetOrMenu:
    """Show the main menu."""


@dataclass(frozen=True)
class MenuChoice:
    """Numbered option picked right after the menu was sent."""
    option: int


@dataclass(frozen=True)
class PurchaseInterest:
    pass


@dataclass(frozen=True)
class UrgentSupport:
    pass


@dataclass(frozen=True)
class CallbackRequest:
    pass


@dataclass(frozen=True)
class NameIntroduction:
    name: str


@dataclass(frozen=True)
class DemoScheduled:
    date: str
    time: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Unrecognized:
    pass


Intent = Union[
    GreetOrMenu,
    MenuChoice,
    PurchaseInterest,
    UrgentSupport,
    CallbackRequest,
    NameIntroduction,
    DemoScheduled,
    Unrecognized,
]
