"""
Centralized configuration with environment variable overrides.

Business contact details, storage locations, I/O timeouts and transport
credentials are configurable here. Reply templates and engine logic read
from `settings` instead of hardcoding values.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from src.logging_context import SenderIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_HANDLER_NAME = "sender-console"
LOG_FORMAT = "%(asctime)s [%(name)s] [%(sender_id)s] %(levelname)s: %(message)s"

VALID_EVENT_SINKS = ("csv", "jsonl", "memory")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BusinessConfig:
    """Business-specific settings loaded from environment or defaults."""

    name: str = os.getenv("BUSINESS_NAME", "Your Business")
    support_phone: str = os.getenv("SUPPORT_PHONE", "+91-XXXXX-XXXXX")
    support_email: str = os.getenv("SUPPORT_EMAIL", "support@yourcompany.com")
    website: str = os.getenv("BUSINESS_WEBSITE", "www.yourwebsite.com")
    support_hours: str = os.getenv("SUPPORT_HOURS", "9 AM - 6 PM (Mon-Sat)")
    callback_window_hours: int = _safe_int("CALLBACK_WINDOW_HOURS", "2")
    urgent_callback_minutes: int = _safe_int("URGENT_CALLBACK_MINUTES", "15")
    timezone: str = os.getenv("BUSINESS_TIMEZONE", "Asia/Kolkata")


@dataclass(frozen=True)
class ResponderConfig:
    """Storage locations and I/O limits for the session engine."""

    io_timeout_sec: float = _safe_float("IO_TIMEOUT_SECONDS", "10.0")
    session_store_path: str = os.getenv("SESSION_STORE_PATH", "users.json")
    event_log_path: str = os.getenv("EVENT_LOG_PATH", "leads.csv")
    event_sink: str = os.getenv("EVENT_SINK", "csv")
    host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    port: int = _safe_int("SERVER_PORT", "8000")


@dataclass(frozen=True)
class TwilioConfig:
    """Credentials for the Twilio WhatsApp transport."""

    account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    whatsapp_from: str = os.getenv("TWILIO_WHATSAPP_FROM", "")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    responder: ResponderConfig = field(default_factory=ResponderConfig)
    twilio: TwilioConfig = field(default_factory=TwilioConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "whatsapp-responder")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.responder.io_timeout_sec <= 0:
        raise ValueError(
            f"IO_TIMEOUT_SECONDS must be > 0, got {config.responder.io_timeout_sec}"
        )
    if config.responder.event_sink not in VALID_EVENT_SINKS:
        raise ValueError(
            f"EVENT_SINK must be one of {VALID_EVENT_SINKS}, "
            f"got {config.responder.event_sink!r}"
        )
    if not 1 <= config.responder.port <= 65535:
        raise ValueError(f"SERVER_PORT must be between 1 and 65535, got {config.responder.port}")
    if config.business.callback_window_hours < 1:
        raise ValueError(
            "CALLBACK_WINDOW_HOURS must be >= 1, "
            f"got {config.business.callback_window_hours}"
        )
    if config.business.urgent_callback_minutes < 1:
        raise ValueError(
            "URGENT_CALLBACK_MINUTES must be >= 1, "
            f"got {config.business.urgent_callback_minutes}"
        )
    if not config.business.timezone.strip():
        raise ValueError("BUSINESS_TIMEZONE must not be empty")


def configure_logging(level: int) -> logging.Handler:
    """Install the root console handler that prints the current sender id."""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        if handler.get_name() == LOG_HANDLER_NAME:
            return handler
    handler = logging.StreamHandler()
    handler.set_name(LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(SenderIdFilter())
    root.addHandler(handler)
    return handler


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    configure_logging(getattr(logging, config.log_level.upper(), logging.INFO))
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
