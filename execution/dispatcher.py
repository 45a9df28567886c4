"""
Dispatcher — validate and execute tool calls against the data store.

Responsibility:
- Validate every ToolCall against its ActionSpec before touching data
- Call the data store capability: async stores are awaited, sync stores
  run in a worker thread so other sessions keep going
- Package results (tables, messages, errors) into a ResponseEnvelope

Prohibitions:
- No confirmation logic (callers only pass approved or read-only calls)
- No model calls

Batches run strictly in order. A failing call does not stop the batch:
every call is attempted and each failure is reported in the envelope.
"""

import asyncio
import inspect
import logging
import re
from typing import Any, Protocol

from execution.result_combiner import ActionOutcome, ResultCombiner
from observability.logger import Observability
from registry.action_registry import ActionRegistry
from shared.errors import DataError, InvalidArgumentError, UnknownActionError
from shared.models import DataTable, OperationResult, ResponseEnvelope, ToolCall

logger = logging.getLogger(__name__)


class DataStore(Protocol):
    def perform_operation(self, action_name: str, args: dict[str, Any]) -> OperationResult: ...


def humanize_action_name(name: str) -> str:
    """`showMataKuliah` -> `Show Mata Kuliah`."""
    words = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name).split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


class Dispatcher:
    """Executes validated tool calls and builds envelopes."""

    def __init__(self, registry: ActionRegistry, data_store: DataStore):
        self.registry = registry
        self.data_store = data_store
        self.result_combiner = ResultCombiner()

    async def execute(self, tool_call: ToolCall, session_id: str | None = None) -> ResponseEnvelope:
        outcome = await self._run(tool_call, Observability(session_id))
        return self.result_combiner.combine([outcome])

    async def execute_batch(self, tool_calls: list[ToolCall], session_id: str | None = None) -> ResponseEnvelope:
        obs = Observability(session_id)
        outcomes = [await self._run(call, obs) for call in tool_calls]
        failed = sum(1 for outcome in outcomes if not outcome.success)
        if failed:
            logger.warning("Batch finished with %d/%d failed action(s)", failed, len(outcomes))
        return self.result_combiner.combine(outcomes)

    async def _run(self, tool_call: ToolCall, obs: Observability) -> ActionOutcome:
        try:
            call = self.registry.validate(tool_call)
        except (UnknownActionError, InvalidArgumentError) as e:
            logger.info("Rejected tool call %s: %s", tool_call.name, e)
            return ActionOutcome(call=tool_call, success=False, error=str(e))

        try:
            with obs.measure("action_dispatch", {"action": call.name}) as metric:
                perform = self.data_store.perform_operation
                if inspect.iscoroutinefunction(perform):
                    result = await perform(call.name, call.args)
                else:
                    result = await asyncio.to_thread(perform, call.name, call.args)
                if inspect.isawaitable(result):
                    result = await result
                if result.rows is not None:
                    metric["rows"] = len(result.rows)
                if result.affected is not None:
                    metric["affected"] = result.affected
        except DataError as e:
            return ActionOutcome(call=call, success=False, error=str(e))
        except Exception as e:
            logger.exception("Action %s failed", call.name)
            return ActionOutcome(call=call, success=False, error=f"Unexpected error in '{call.name}': {e}")

        return self._to_outcome(call, result)

    def _to_outcome(self, call: ToolCall, result: OperationResult) -> ActionOutcome:
        if result.rows is not None:
            if not result.rows:
                return ActionOutcome(call=call, success=True, message=f"No data found for `{call.name}`.")
            return ActionOutcome(
                call=call,
                success=True,
                table=DataTable(title=humanize_action_name(call.name), rows=list(result.rows)),
                message=result.message,
            )
        message = result.message or f"`{call.name}` completed."
        return ActionOutcome(call=call, success=True, message=message)
