"""Main menu catalog: the five numbered options and the offers they present."""

import logging
from typing import Optional

from src.schemas.session_schema import MAX_MENU_OPTION, MIN_MENU_OPTION

logger = logging.getLogger(__name__)

MENU_CATALOG: dict[int, dict] = {
    1: {
        "title": "Product Catalog",
        "emoji": "📦",
        "log_choice": "Product Catalog Requested",
    },
    2: {
        "title": "Pricing & Plans",
        "emoji": "💰",
        "log_choice": "Pricing Requested",
    },
    3: {
        "title": "Schedule Demo",
        "emoji": "📅",
        "log_choice": "Demo Requested",
    },
    4: {
        "title": "Contact Support",
        "emoji": "🎧",
        "log_choice": "Support Requested",
    },
    5: {
        "title": "Download Brochure",
        "emoji": "📄",
        "log_choice": "Brochure Downloaded",
    },
}

MENU_BULLETS: dict[int, str] = {
    1: "1️⃣", 2: "2️⃣", 3: "3️⃣", 4: "4️⃣", 5: "5️⃣",
}

PRODUCTS: list[dict[str, str]] = [
    {"name": "Premium Service A", "price": "₹2999"},
    {"name": "Standard Service B", "price": "₹1499"},
    {"name": "Basic Service C", "price": "₹999"},
]

PLANS: list[dict[str, str]] = [
    {
        "emoji": "🌟",
        "name": "Starter",
        "price": "₹999/month",
        "includes": "Feature 1, 2, 3",
    },
    {
        "emoji": "🚀",
        "name": "Pro",
        "price": "₹2999/month",
        "includes": "All Starter + Premium features",
    },
    {
        "emoji": "🔥",
        "name": "Enterprise",
        "price": "Custom pricing",
        "includes": "Full suite + support",
    },
]


def is_valid_option(option: int) -> bool:
    return MIN_MENU_OPTION <= option <= MAX_MENU_OPTION and option in MENU_CATALOG


def get_menu_option(option: int) -> Optional[dict]:
    """Look up a menu option by number. Returns None for unknown numbers."""
    entry = MENU_CATALOG.get(option)
    if entry is None:
        logger.debug("Unknown menu option requested: %s", option)
    return entry


def get_menu_options() -> list[tuple[int, dict]]:
    """Return (number, entry) pairs in menu order."""
    return sorted(MENU_CATALOG.items())
