"""
Lead log adapters.

Events are append-only and never read back by the engine. The CSV sink
writes the spreadsheet layout sales uses for lead follow-up; the JSONL
sink keeps the full event for downstream reporting.
"""

import asyncio
import csv
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Protocol

from src.config import settings
from src.schemas.event_schema import SHEET_COLUMNS, LogEvent

logger = logging.getLogger(__name__)


class SinkUnavailable(Exception):
    """Raised when an event could not be recorded."""


class EventSink(Protocol):
    async def record(self, event: LogEvent) -> None: ...

    async def close(self) -> None: ...


class InMemoryEventSink:
    """Keeps events in a list for tests and the console demo."""

    def __init__(self) -> None:
        self.events: list[LogEvent] = []

    async def record(self, event: LogEvent) -> None:
        self.events.append(event)

    async def close(self) -> None:
        pass


class _FileSink(ABC):
    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def record(self, event: LogEvent) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._append, event)
            except OSError as exc:
                raise SinkUnavailable(f"Cannot append to {self._path}") from exc
        logger.info("Saved to lead log: %s (%s)", event.choice_label, event.status_tag.value)

    async def close(self) -> None:
        async with self._lock:
            logger.info("Lead log at %s closed", self._path)

    @abstractmethod
    def _append(self, event: LogEvent) -> None:
        """Write one event to the file. Runs in a worker thread."""


class JsonlEventSink(_FileSink):
    """One JSON object per line."""

    def _append(self, event: LogEvent) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(event.model_dump_json() + "\n")


class CsvLeadSheetSink(_FileSink):
    """Spreadsheet-style rows: Phone, Name, Choice, Message, Timestamp, Status."""

    def __init__(self, path: str, tz_name: str = settings.business.timezone) -> None:
        super().__init__(path)
        self._tz_name = tz_name

    def _append(self, event: LogEvent) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        write_header = not self._path.exists() or self._path.stat().st_size == 0
        with self._path.open("a", encoding="utf-8", newline="") as fh:
            writer = csv.DictWriter(fh, fieldnames=SHEET_COLUMNS)
            if write_header:
                writer.writeheader()
            writer.writerow(event.to_sheet_row(self._tz_name))


def build_event_sink(kind: str, path: str) -> EventSink:
    """Create the sink named by EVENT_SINK."""
    if kind == "csv":
        return CsvLeadSheetSink(path)
    if kind == "jsonl":
        return JsonlEventSink(path)
    if kind == "memory":
        return InMemoryEventSink()
    raise ValueError(f"Unknown event sink '{kind}'")
