"""Per-sender session state and its step model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

MIN_MENU_OPTION = 1
MAX_MENU_OPTION = 5


class SessionStep(str, Enum):
    """Position of a sender in the scripted conversation."""
    NEW = "NEW"
    MENU_SENT = "MENU_SENT"
    OPTION_SELECTED = "OPTION_SELECTED"


class SessionState(BaseModel):
    """
    Durable record of one sender's conversation.

    `selected_option` is the payload of the OPTION_SELECTED step and is
    only present on that step. `last_choice` survives later steps and is
    never cleared once set.
    """

    model_config = ConfigDict(frozen=True)

    step: SessionStep = SessionStep.NEW
    selected_option: Optional[int] = Field(default=None, ge=MIN_MENU_OPTION, le=MAX_MENU_OPTION)
    display_name: Optional[str] = None
    last_choice: Optional[int] = Field(default=None, ge=MIN_MENU_OPTION, le=MAX_MENU_OPTION)
    joined_at: datetime
    last_active_at: datetime

    @model_validator(mode="after")
    def _check_step_payload(self) -> "SessionState":
        if self.step == SessionStep.OPTION_SELECTED and self.selected_option is None:
            raise ValueError("OPTION_SELECTED step requires selected_option")
        if self.step != SessionStep.OPTION_SELECTED and self.selected_option is not None:
            raise ValueError(
                f"selected_option is only valid on OPTION_SELECTED, not {self.step.value}"
            )
        return self

    @classmethod
    def first_contact(cls, now: datetime) -> "SessionState":
        """Create the lazily-initialised record for a sender seen for the first time."""
        return cls(step=SessionStep.NEW, joined_at=now, last_active_at=now)

    @property
    def step_label(self) -> str:
        if self.step == SessionStep.OPTION_SELECTED:
            return f"{self.step.value}({self.selected_option})"
        return self.step.value
