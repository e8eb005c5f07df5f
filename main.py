"""
WhatsApp responder entry point.

Runs the Twilio webhook server, or the offline console demo for
development.

Usage:
    Webhook server: python main.py serve
    Console mode:   python main.py console
"""

import logging
import sys

from src.config import settings

logger = logging.getLogger(__name__)


def _run_server_mode() -> None:
    """Start the FastAPI webhook under uvicorn (requires Twilio credentials)."""
    import uvicorn

    from src.server import create_app

    logger.info("Starting WhatsApp bot on %s:%s", settings.responder.host, settings.responder.port)
    uvicorn.run(
        create_app(),
        host=settings.responder.host,
        port=settings.responder.port,
        log_level=settings.log_level.lower(),
    )


def _run_console_mode() -> None:
    """Start the offline console demo (no credentials required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server_mode()
