"""
Session store adapters keyed by sender id.

The in-memory store backs tests and the console demo. The JSON file
store keeps every session under a top-level "users" key in one file,
rewriting it atomically on each put.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from src.schemas.session_schema import SessionState

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """Raised when the session store cannot be read or written."""


class SessionStore(Protocol):
    async def get(self, sender: str) -> Optional[SessionState]: ...

    async def put(self, sender: str, state: SessionState) -> None: ...

    async def close(self) -> None: ...


class InMemorySessionStore:
    """Process-local session store."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}

    async def get(self, sender: str) -> Optional[SessionState]:
        return self._sessions.get(sender)

    async def put(self, sender: str, state: SessionState) -> None:
        self._sessions[sender] = state

    async def close(self) -> None:
        logger.debug("In-memory store closed with %d sessions", len(self._sessions))

    def __len__(self) -> int:
        return len(self._sessions)


class JsonFileSessionStore:
    """
    Durable store backed by a single JSON document.

    Sessions are serialized with pydantic so a reloaded record is
    identical to the one that was written. File I/O runs in a worker
    thread; writes are serialized by an internal lock.
    """

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def get(self, sender: str) -> Optional[SessionState]:
        users = await asyncio.to_thread(self._read_users)
        raw = users.get(sender)
        if raw is None:
            return None
        try:
            return SessionState.model_validate(raw)
        except ValidationError as exc:
            raise StoreUnavailable(f"Corrupt session record for {sender}") from exc

    async def put(self, sender: str, state: SessionState) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_user, sender, state.model_dump(mode="json"))

    async def close(self) -> None:
        async with self._lock:
            logger.info("Session store at %s closed", self._path)

    def _read_users(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except OSError as exc:
            raise StoreUnavailable(f"Cannot read session store {self._path}") from exc
        except ValueError as exc:
            raise StoreUnavailable(f"Session store {self._path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise StoreUnavailable(f"Session store {self._path} is not a JSON object")
        users = data.get("users")
        if users is None:
            return {}
        if not isinstance(users, dict):
            raise StoreUnavailable(f"Session store {self._path} has a malformed users table")
        return users

    def _write_user(self, sender: str, record: dict) -> None:
        users = self._read_users()
        users[sender] = record
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps({"users": users}, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StoreUnavailable(f"Cannot write session store {self._path}") from exc
