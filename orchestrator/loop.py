"""
Conversation Loop — per-session turn handling.

Responsibility:
- Resolve a pending confirmation before anything else (no model call)
- Otherwise call the model once and route its segments:
  ToolCalls -> confirmation gate -> dispatcher, text -> intro_text
- Turn every failure into a ResponseEnvelope

Prohibitions:
- No data access (dispatcher only)
- No provider specifics (model adapter only)

Turns of one session are serialized by a per-session asyncio.Lock;
different sessions run concurrently. Idle sessions keep no lock.
"""

import asyncio
import logging
import weakref

from confirmation.gate import ConfirmationGate
from conversation.manager import ConversationManager
from execution.dispatcher import Dispatcher
from models.adapter import ModelAdapter
from observability.logger import Observability
from shared.errors import ProviderError
from shared.models import ApprovalDecision, Message, ResponseEnvelope, TextSegment, ToolCall
from shared.response_formatter import format_envelope

logger = logging.getLogger(__name__)

CANCELLED_TEXT = "Okay, the action was cancelled. No data was changed."
NO_PENDING_ERROR = "There is no pending action to confirm."
STALE_PENDING_ERROR = "This confirmation refers to an older request. Please answer the latest confirmation."
EMPTY_MODEL_ERROR = "The model returned no usable answer. Please rephrase your request."


class ConversationLoop:
    """Sole entry point for a conversational turn."""

    def __init__(
        self,
        model_adapter: ModelAdapter,
        gate: ConfirmationGate,
        dispatcher: Dispatcher,
        conversation: ConversationManager | None = None,
        history_limit: int = 20,
    ):
        self.model_adapter = model_adapter
        self.gate = gate
        self.dispatcher = dispatcher
        self.conversation = conversation
        self.history_limit = history_limit
        # A lock lives only while some turn of its session holds or awaits it.
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    async def handle_turn(
        self,
        session_id: str,
        history: list[Message],
        system_prompt: str | None = None,
        provider: str | None = None,
        approval: ApprovalDecision | None = None,
    ) -> ResponseEnvelope:
        """
        Process one turn of a session.
        Returns a ResponseEnvelope — never raises.
        """
        async with self._lock_for(session_id):
            try:
                envelope = await self._process(session_id, history, system_prompt, provider, approval)
            except Exception as e:
                logger.exception("Turn failed for session %s", session_id)
                envelope = ResponseEnvelope(success=False, error=f"Internal error: {e}")

        Observability(session_id).log_event(
            "turn_completed",
            {
                "success": envelope.success,
                "needs_confirmation": bool(envelope.needs_confirmation),
                "tables": len(envelope.tables or []),
            },
        )
        return envelope

    async def _process(
        self,
        session_id: str,
        history: list[Message],
        system_prompt: str | None,
        provider: str | None,
        approval: ApprovalDecision | None,
    ) -> ResponseEnvelope:
        pending = self.gate.pending_for(session_id)
        if pending is not None:
            if approval is not None:
                if approval.pending_id and approval.pending_id != pending.id:
                    logger.warning("Session %s: stale approval for %s", session_id, approval.pending_id)
                    return ResponseEnvelope(success=False, error=STALE_PENDING_ERROR)
                approved = approval.approved
            else:
                approved = self.gate.recognizer.is_affirmative(_last_user_text(history))
            return await self._resolve(session_id, approved)

        if approval is not None:
            return ResponseEnvelope(success=False, error=NO_PENDING_ERROR)

        try:
            segments = await asyncio.to_thread(
                self.model_adapter.converse, history, system_prompt, provider, session_id
            )
        except ProviderError as e:
            logger.warning("Provider %s failed: %s", e.provider, e)
            return ResponseEnvelope(success=False, error=str(e))

        texts = [segment.text.strip() for segment in segments if isinstance(segment, TextSegment) and segment.text.strip()]
        calls = [segment for segment in segments if isinstance(segment, ToolCall)]

        if calls:
            held = self.gate.intercept(session_id, calls)
            if held is not None:
                if texts:
                    held = held.model_copy(update={"intro_text": "\n\n".join(texts)})
                return held
            envelope = await self.dispatcher.execute_batch(calls, session_id)
            if texts:
                intro = "\n\n".join([*texts, envelope.intro_text] if envelope.intro_text else texts)
                envelope = envelope.model_copy(update={"intro_text": intro})
            return envelope

        if texts:
            return ResponseEnvelope(success=True, intro_text="\n\n".join(texts))
        return ResponseEnvelope(success=False, error=EMPTY_MODEL_ERROR)

    async def _resolve(self, session_id: str, approved: bool) -> ResponseEnvelope:
        pending = self.gate.resolve(session_id, approved)
        if pending is None:
            return ResponseEnvelope(success=False, error=NO_PENDING_ERROR)
        if not approved:
            logger.info("Session %s: pending set %s rejected", session_id, pending.id)
            return ResponseEnvelope(success=True, intro_text=CANCELLED_TEXT)
        logger.info("Session %s: dispatching %d approved action(s)", session_id, len(pending.actions))
        return await self.dispatcher.execute_batch(pending.actions, session_id)

    # ─── Persistence helpers ───────────────────────────────────

    def load_history(self, session_id: str) -> list[Message]:
        if self.conversation is None:
            return []
        return self.conversation.get_history(session_id, limit=self.history_limit)

    async def chat(
        self,
        session_id: str,
        user_text: str,
        provider: str | None = None,
        approval: ApprovalDecision | None = None,
    ) -> ResponseEnvelope:
        """Load history, run one turn for `user_text`, persist both messages."""
        user_message = Message(role="user", content=user_text)
        history = [*self.load_history(session_id), user_message]
        envelope = await self.handle_turn(session_id, history, provider=provider, approval=approval)

        if self.conversation is not None:
            self.conversation.save(session_id, user_message)
            self.conversation.save(
                session_id,
                Message(role="assistant", content=format_envelope(envelope), response=envelope),
            )
        return envelope

    async def confirm(self, session_id: str, decision: ApprovalDecision) -> ResponseEnvelope:
        """Explicit approve/reject from a UI button."""
        return await self.chat(session_id, "yes" if decision.approved else "no", approval=decision)


def _last_user_text(history: list[Message]) -> str:
    for message in reversed(history):
        if message.role == "user":
            return message.content
    return ""
