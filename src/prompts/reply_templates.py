"""Reply text builders for every outcome of the session engine."""

from typing import Optional

from src.config import settings
from src.tools.catalog import MENU_BULLETS, PLANS, PRODUCTS, get_menu_option, get_menu_options
from src.utils import display_number

BACK_TO_MENU = "Or type *menu* to go back"
NAME_NOT_PROVIDED = "Not provided"


def build_main_menu() -> str:
    """Build the numbered main menu."""
    lines = [
        f"🔥 *Welcome to {settings.business.name}!*",
        "",
        "Please choose an option:",
        "",
    ]
    for number, entry in get_menu_options():
        lines.append(f"{MENU_BULLETS[number]} *{entry['title']}*")
    lines.append("")
    lines.append(f"💬 Reply with number (1-{len(MENU_BULLETS)}) or type *menu* anytime")
    return "\n".join(lines)


def _build_catalog_body() -> list[str]:
    lines = ["Our top products:"]
    lines.extend(f"• {p['name']} - {p['price']}" for p in PRODUCTS)
    lines += ["", "Want detailed specs? Reply *specs*", "Ready to buy? Reply *buy*", BACK_TO_MENU]
    return lines


def _build_pricing_body() -> list[str]:
    lines: list[str] = []
    for plan in PLANS:
        lines += [f"{plan['emoji']} *{plan['name']}* - {plan['price']}", f"• {plan['includes']}", ""]
    lines += ["Ready to start? Reply *buy*", BACK_TO_MENU]
    return lines


def _build_demo_body() -> list[str]:
    return [
        "Great choice! To book your demo:",
        "",
        "Share your preferred:",
        "• Date (DD-MM-YYYY)",
        "• Time (HH:MM)",
        "• Your name",
        "",
        'Example: "25-09-2025 15:00 John"',
        "",
        BACK_TO_MENU,
    ]


def _build_support_body() -> list[str]:
    business = settings.business
    return [
        "Our team is here to help!",
        "",
        f"📞 Call: {business.support_phone}",
        f"📧 Email: {business.support_email}",
        f"⏰ Hours: {business.support_hours}",
        "",
        "For urgent issues, reply *urgent*",
        BACK_TO_MENU,
    ]


def _build_brochure_body() -> list[str]:
    return [
        "Here's our company brochure with all details!",
        "",
        "[PDF would be attached here]",
        "",
        "Need more info? Reply *call* for callback",
        "Want to buy? Reply *buy*",
        "Or type *menu* for more options",
    ]


_OPTION_BODIES = {
    1: _build_catalog_body,
    2: _build_pricing_body,
    3: _build_demo_body,
    4: _build_support_body,
    5: _build_brochure_body,
}


def build_option_reply(option: int) -> Optional[str]:
    """Build the detail text for a menu option, or None if the option does not exist."""
    entry = get_menu_option(option)
    body = _OPTION_BODIES.get(option)
    if entry is None or body is None:
        return None
    header = f"{entry['emoji']} *{entry['title']}*"
    return "\n".join([header, ""] + body())


def build_purchase_reply() -> str:
    business = settings.business
    return (
        "💳 *Ready to Purchase?*\n\n"
        f"WhatsApp us your requirements:\n{business.support_phone}\n\n"
        f"Or visit: {business.website}\n\n"
        "After order, we'll send payment link!"
    )


def build_urgent_reply(sender: str) -> str:
    minutes = settings.business.urgent_callback_minutes
    return (
        "🚨 *Urgent Support*\n\n"
        "Connecting you to our priority team...\n"
        f"You'll receive a call within {minutes} minutes.\n\n"
        f"Callback number: {display_number(sender)}"
    )


def build_callback_reply(sender: str) -> str:
    hours = settings.business.callback_window_hours
    window = "1 hour" if hours == 1 else f"{hours} hours"
    return (
        "📞 *Callback Requested*\n\n"
        f"We'll call you within {window}!\n"
        f"Phone: {display_number(sender)}\n\n"
        "For faster response, WhatsApp us directly."
    )


def build_name_greeting(name: str) -> str:
    return (
        f"Nice to meet you, *{name}*! 👋\n\n"
        "How can I help you today? Type *menu* for options."
    )


def build_demo_confirmation(date: str, time: str, name: Optional[str]) -> str:
    return (
        "✅ *Demo Scheduled!*\n\n"
        f"📅 Date: {date}\n"
        f"⏰ Time: {time}\n"
        f"👤 Name: {name or NAME_NOT_PROVIDED}\n\n"
        "We'll call you 10 mins before the demo.\n"
        "Calendar invite will be sent shortly!"
    )


def build_fallback_reply() -> str:
    return (
        "🤔 I didn't quite understand that.\n\n"
        "Type *menu* to see options\n"
        "Type *help* for help\n"
        "Or just tell me what you need!"
    )


def build_invalid_choice_reply() -> str:
    return f"❌ Invalid choice. Please reply 1-{len(MENU_BULLETS)} or type *menu*"
