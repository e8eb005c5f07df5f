"""
Free-text capture parsers for name introductions and demo bookings.

Each parser returns a structured capture or None. A None result means
the text did not fit the expected shape and the caller should move on
to its next rule; malformed input is never an error here.
"""

import re
from dataclasses import dataclass
from typing import Optional

NAME_PATTERN = re.compile(r"(?:name is|i am) ([a-zA-Z\s]+)", re.IGNORECASE)
DEMO_PATTERN = re.compile(r"(\d{1,2}-\d{1,2}-\d{4})\s+(\d{1,2}:\d{2})\s*(.+)?")


@dataclass(frozen=True)
class DemoCapture:
    date: str
    time: str
    name: Optional[str] = None


def parse_name(text: str) -> Optional[str]:
    """Extract the name from phrases like "my name is Asha" or "I am Ravi Kumar".

    The capture keeps the casing of the original text.
    """
    match = NAME_PATTERN.search(text)
    if not match:
        return None
    name = match.group(1).strip()
    return name or None


def parse_demo_request(text: str) -> Optional[DemoCapture]:
    """Extract a DD-MM-YYYY date, HH:MM time and optional trailing name."""
    match = DEMO_PATTERN.search(text)
    if not match:
        return None
    date, time, name = match.groups()
    name = name.strip() if name else None
    return DemoCapture(date=date, time=time, name=name or None)
