"""
CLI Entry Adapter.

Responsibility:
- Receive user input from terminal
- Normalize to EntryRequest contract (session + selected provider)
- Handle local slash commands (/provider, /help)
- NO tool-call parsing, NO confirmation logic, NO data access
"""

import uuid
from typing import Iterable

from shared.models import EntryRequest

HELP_TEXT = (
    "Commands:\n"
    "  /provider <name>   switch model provider\n"
    "  /help              show this help\n"
    "  exit               quit"
)


class CLIAdapter:
    """Command-line entry adapter."""

    def __init__(
        self,
        session_id: str | None = None,
        provider: str | None = None,
        available_providers: Iterable[str] = (),
    ):
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self.provider = provider
        self.available_providers = list(available_providers)

    def is_command(self, raw_input: str) -> bool:
        return raw_input.strip().startswith("/")

    def handle_command(self, raw_input: str) -> str:
        """Apply a slash command; return the feedback line to print."""
        parts = raw_input.strip().split()
        command = parts[0].lower()
        if command == "/provider":
            if len(parts) < 2:
                return f"Current provider: {self.provider}. Available: {', '.join(self.available_providers)}"
            choice = parts[1].lower()
            if self.available_providers and choice not in self.available_providers:
                return f"Unknown provider '{choice}'. Available: {', '.join(self.available_providers)}"
            self.provider = choice
            return f"Provider switched to {choice}."
        if command == "/help":
            return HELP_TEXT
        return f"Unknown command '{command}'. Type /help."

    def read_input(self, raw_input: str) -> EntryRequest:
        """Normalize raw CLI input to EntryRequest."""
        return EntryRequest(
            session_id=self.session_id,
            input_text=raw_input.strip(),
            provider=self.provider,
        )
