"""
Confirmation Gate — human approval before any side effect.

Responsibility:
- Detect batches that contain at least one mutating action
- Hold such a batch as the session's PendingActionSet (at most one)
- Build the human-readable confirmation prompt
- Release the pending set exactly once, on approval or rejection

Prohibitions:
- Never executes actions
- Never calls the model

State lives in memory, keyed by session_id, and is popped under a lock so
the same PendingActionSet can never be handed out twice.
"""

import logging
import re
import threading
import unicodedata
from enum import Enum
from typing import Any, Iterable

from observability.logger import Observability
from registry.action_registry import ActionRegistry
from shared.config import DEFAULT_NO_WORDS, DEFAULT_YES_WORDS
from shared.models import PendingActionSet, ResponseEnvelope, ToolCall

logger = logging.getLogger(__name__)

_OPERATION_VERBS = {
    "add": "Add",
    "update": "Update",
    "delete": "Delete",
    "assign": "Assign",
    "unassign": "Unassign",
    "show": "Show",
    "meta": "Run",
}


class GateState(str, Enum):
    IDLE = "IDLE"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"


def _normalize_text(text: str) -> str:
    raw = (text or "").strip().lower()
    if not raw:
        return ""
    normalized = unicodedata.normalize("NFKD", raw)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    without_punctuation = re.sub(r"[^a-z0-9\s]", " ", ascii_only)
    return re.sub(r"\s+", " ", without_punctuation).strip()


class ConfirmationRecognizer:
    """Map a free-text reply to approve / reject.

    Only a clearly affirmative reply approves. A reply that matches neither
    vocabulary is treated as a rejection by `is_affirmative`.
    """

    def __init__(
        self,
        yes_words: Iterable[str] = DEFAULT_YES_WORDS,
        no_words: Iterable[str] = DEFAULT_NO_WORDS,
    ):
        self.yes_words = frozenset(_normalize_text(word) for word in yes_words if _normalize_text(word))
        self.no_words = frozenset(_normalize_text(word) for word in no_words if _normalize_text(word))

    def interpret(self, text: str) -> bool | None:
        """True for yes, False for no, None when the reply is neither."""
        normalized = _normalize_text(text)
        if not normalized:
            return None
        if normalized in self.no_words:
            return False
        if normalized in self.yes_words:
            return True

        # "yes please", "ok, go ahead", "tidak jadi"
        tokens = normalized.split(" ")
        if any(token in self.no_words for token in tokens):
            return False
        if tokens[0] in self.yes_words or any(
            phrase in normalized for phrase in self.yes_words if " " in phrase
        ):
            return True
        return None

    def is_affirmative(self, text: str) -> bool:
        return self.interpret(text) is True


class ConfirmationGate:
    """Per-session state machine IDLE <-> AWAITING_CONFIRMATION."""

    def __init__(self, registry: ActionRegistry, recognizer: ConfirmationRecognizer | None = None):
        self.registry = registry
        self.recognizer = recognizer or ConfirmationRecognizer()
        self._pending: dict[str, PendingActionSet] = {}
        self._lock = threading.Lock()

    # ─── State ─────────────────────────────────────────────────

    def state(self, session_id: str) -> GateState:
        with self._lock:
            pending = session_id in self._pending
        return GateState.AWAITING_CONFIRMATION if pending else GateState.IDLE

    def pending_for(self, session_id: str) -> PendingActionSet | None:
        with self._lock:
            return self._pending.get(session_id)

    # ─── Transitions ───────────────────────────────────────────

    def intercept(self, session_id: str, tool_calls: list[ToolCall]) -> ResponseEnvelope | None:
        """
        Hold a batch that contains a mutating action.

        Returns the confirmation envelope, or None when every call is
        read-only (and may be dispatched straight away).
        """
        if not tool_calls or not any(self.registry.is_mutating(call.name) for call in tool_calls):
            return None

        prompt = self.build_prompt(tool_calls)
        pending = PendingActionSet(session_id=session_id, actions=list(tool_calls), prompt=prompt)
        with self._lock:
            replaced = self._pending.get(session_id)
            self._pending[session_id] = pending
        if replaced is not None:
            logger.warning("Session %s: pending set %s replaced by %s", session_id, replaced.id, pending.id)

        Observability(session_id).log_event(
            "confirmation_requested",
            {
                "pending_id": pending.id,
                "actions": [call.name for call in tool_calls],
            },
        )
        return ResponseEnvelope(
            success=True,
            needs_confirmation=True,
            confirmation_prompt=prompt,
            pending_actions=pending,
        )

    def resolve(self, session_id: str, approved: bool) -> PendingActionSet | None:
        """
        Pop the session's pending set.

        On approval the caller dispatches the returned actions in order;
        on rejection they are simply discarded. Returns None when nothing
        was pending.
        """
        with self._lock:
            pending = self._pending.pop(session_id, None)
        if pending is None:
            return None

        Observability(session_id).log_event(
            "confirmation_resolved",
            {
                "pending_id": pending.id,
                "approved": approved,
                "actions": [call.name for call in pending.actions],
            },
        )
        return pending

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._pending.pop(session_id, None)

    # ─── Prompt ────────────────────────────────────────────────

    def build_prompt(self, tool_calls: list[ToolCall]) -> str:
        lines = ["The following actions will change the data:"]
        for index, call in enumerate(tool_calls, start=1):
            lines.append(f"{index}. {self._describe(call)}")
        lines.append("Do you want to continue? (yes/no)")
        return "\n".join(lines)

    def _describe(self, call: ToolCall) -> str:
        spec = self.registry.lookup(call.name)
        if spec is None:
            return f"{call.name} (unknown action)"

        verb = _OPERATION_VERBS.get(spec.operation, spec.operation.title())
        fields = spec.key_fields or list(call.args.keys())
        details = [
            f"{field}: {_summarize(call.args[field])}"
            for field in fields
            if call.args.get(field) is not None
        ]
        label = f"{verb} {spec.entity}".strip()
        if not spec.mutating:
            label = f"{label} (read-only)"
        return f"{label}: {', '.join(details)}" if details else label


def _summarize(value: Any) -> str:
    if isinstance(value, list):
        if not value:
            return "[]"
        names = [_summarize(item) for item in value]
        return "[" + "; ".join(names) + "]"
    if isinstance(value, dict):
        named = value.get("name") or value.get("title") or value.get("full_name")
        if named is not None and len(value) > 1:
            return str(named)
        return ", ".join(f"{key}={item}" for key, item in value.items())
    return str(value)
