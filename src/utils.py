"""Shared utilities used across the WhatsApp responder."""

import re

WHATSAPP_PREFIX = "whatsapp:"
DIRECT_CHAT_SUFFIX = "@c.us"
GROUP_CHAT_SUFFIX = "@g.us"
STATUS_BROADCAST = "status@broadcast"


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+61 (412) 345-678")
        '+61412345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def display_number(sender: str) -> str:
    """Strip transport decorations from a sender id for display in replies and logs.

    Examples:
        >>> display_number("whatsapp:+91 98765 43210")
        '+919876543210'
        >>> display_number("919876543210@c.us")
        '919876543210'
    """
    value = sender.strip()
    if value.startswith(WHATSAPP_PREFIX):
        value = value[len(WHATSAPP_PREFIX):]
    if value.endswith(DIRECT_CHAT_SUFFIX):
        value = value[: -len(DIRECT_CHAT_SUFFIX)]
    return normalize_phone(value)


def is_group_sender(sender: str) -> bool:
    return sender.strip().endswith(GROUP_CHAT_SUFFIX)


def is_status_sender(sender: str) -> bool:
    return sender.strip() == STATUS_BROADCAST
