"""Sender correlation context for tracing messages across modules.

Provides a sender-aware logger that attaches the current sender id to
every log record, making it easy to follow a single conversation through
resolver, engine and adapters.

Usage:
    from src.logging_context import get_sender_logger, set_sender_id

    set_sender_id("whatsapp:+919876543210")
    logger = get_sender_logger(__name__)
    logger.info("Handling message")  # record.sender_id is populated
"""

import logging
from contextvars import ContextVar, Token

_sender_id: ContextVar[str] = ContextVar("sender_id", default="NO_SENDER")


def set_sender_id(sender_id: str) -> Token:
    """Set the correlation ID for the current async context."""
    return _sender_id.set(sender_id)


def reset_sender_id(token: Token) -> None:
    _sender_id.reset(token)


def get_sender_id() -> str:
    """Retrieve the current correlation ID."""
    return _sender_id.get()


class SenderIdFilter(logging.Filter):
    """Injects sender_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.sender_id = _sender_id.get()  # type: ignore[attr-defined]
        return True


def get_sender_logger(name: str) -> logging.Logger:
    """Return a logger with the SenderIdFilter attached.

    The filter adds ``sender_id`` to each record so formatters can
    include ``%(sender_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SenderIdFilter) for f in logger.filters):
        logger.addFilter(SenderIdFilter())
    return logger
