"""Inbound message and lead-log event models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from src.utils import display_number

SHEET_COLUMNS = ["Phone", "Name", "Choice", "Message", "Timestamp", "Status"]
SHEET_TIMESTAMP_FORMAT = "%d/%m/%Y, %I:%M:%S %p"


class StatusTag(str, Enum):
    """Lead status written alongside every logged interaction."""
    ENGAGED = "Engaged"
    INTERESTED = "Interested"
    HOT_LEAD = "HOT_LEAD"
    PRIORITY = "PRIORITY"
    CALL_BACK = "CALL_BACK"
    QUALIFIED_LEAD = "QUALIFIED_LEAD"
    DEMO_BOOKED = "DEMO_BOOKED"
    NEEDS_HELP = "NEEDS_HELP"


class InboundMessage(BaseModel):
    """A message surfaced by the transport before any filtering."""

    sender: str
    text: str = ""
    is_group: bool = False
    is_status: bool = False


class LogEvent(BaseModel):
    """Write-only record of one handled message, handed to the event sink."""

    sender: str
    display_name: Optional[str] = None
    choice_label: str
    detail_message: str
    status_tag: StatusTag
    timestamp: datetime

    def to_sheet_row(self, tz_name: str) -> dict[str, str]:
        """Render the event as a lead-sheet row keyed by SHEET_COLUMNS."""
        local = self.timestamp.astimezone(ZoneInfo(tz_name))
        return {
            "Phone": display_number(self.sender),
            "Name": self.display_name or "Unknown",
            "Choice": self.choice_label,
            "Message": self.detail_message,
            "Timestamp": local.strftime(SHEET_TIMESTAMP_FORMAT),
            "Status": self.status_tag.value,
        }
