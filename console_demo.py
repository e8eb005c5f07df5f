"""
Offline console demo: chat with the responder without Twilio.

Drives the real session engine, intent resolver and reply templates
with an in-memory session store, an in-memory lead log and a transport
that prints replies to the terminal. No network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario lead
    python console_demo.py --scenario demo
"""

import argparse
import asyncio

from src.config import settings
from src.conversation.engine import SessionEngine
from src.tools.event_sink import InMemoryEventSink
from src.tools.session_store import InMemorySessionStore
from src.tools.transport import RecordingTransport

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CONSOLE_SENDER = "whatsapp:+910000000000"


class ConsoleTransport(RecordingTransport):
    """Prints each reply as it is sent."""

    async def send(self, recipient: str, text: str) -> None:
        await super().send(recipient, text)
        print(f"{GREEN}{BOLD}[{settings.business.name}]{RESET} {GREEN}{text}{RESET}")


class ConsoleSession:
    """Simulates one WhatsApp conversation in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "lead": ["hi", "2", "buy", "xyz"],
        "demo": ["hello", "3", "25-09-2025 15:00 John", "my name is John Mathew"],
        "support": ["hey there", "4", "urgent", "please call me back"],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, sender: str = CONSOLE_SENDER) -> None:
        self.sender = sender
        self.store = InMemorySessionStore()
        self.sink = InMemoryEventSink()
        self.transport = ConsoleTransport()

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  WHATSAPP RESPONDER - {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    async def _process_input(self, engine: SessionEngine, text: str) -> None:
        result = await engine.handle(self.sender, text)
        if result is None:
            self.system_log("Message dropped")
            return
        self.system_log(
            f"Step: {result.next_state.step_label} | "
            f"Lead log: {result.event.choice_label} [{result.event.status_tag.value}]"
        )

    async def _run_scenario(self, steps: list[str]) -> None:
        async with SessionEngine(self.store, self.transport, self.sink) as engine:
            for step in steps:
                print(f"\n{BLUE}[Customer] {RESET}{step}")
                await self._process_input(engine, step)

    async def _run_interactive(self) -> None:
        async with SessionEngine(self.store, self.transport, self.sink) as engine:
            while True:
                try:
                    user_input = (await asyncio.to_thread(input, f"\n{BLUE}[Customer] {RESET}")).strip()
                except EOFError:
                    user_input = "quit"
                if user_input.lower() in ("quit", "exit", "q"):
                    print(f"\n{DIM}Session ended.{RESET}")
                    return
                if len(user_input) > self.MAX_INPUT_LENGTH:
                    self.system_log("Message too long, ignored")
                    continue
                await self._process_input(engine, user_input)

    def _summary(self) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{DIM}  Lead log rows: {len(self.sink.events)}{RESET}")
        for event in self.sink.events:
            print(f"{DIM}    {event.choice_label} [{event.status_tag.value}]{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        self._banner(f"Scenario: {scenario}")
        asyncio.run(self._run_scenario(steps))
        self._summary()

    def run(self) -> None:
        self._banner("Console Demo (type 'quit' to exit)")
        asyncio.run(self._run_interactive())
        self._summary()


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
