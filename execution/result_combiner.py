"""
Result Combiner — merges per-action outcomes into one ResponseEnvelope.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.models import DataTable, ResponseEnvelope, ToolCall

DATA_INTRO = "Here is the data you asked for:"
SUCCESS_INTRO = "All actions executed successfully."
OUTRO = "Anything else I can help with?"


@dataclass
class ActionOutcome:
    call: ToolCall
    success: bool
    table: DataTable | None = None
    message: str | None = None
    error: str | None = None


class ResultCombiner:
    """Combines ordered action outcomes into a stable response envelope."""

    def combine(self, outcomes: list[ActionOutcome]) -> ResponseEnvelope:
        if not outcomes:
            return ResponseEnvelope(success=False, error="No actions to execute.")

        tables = [outcome.table for outcome in outcomes if outcome.table is not None]
        messages = [outcome.message for outcome in outcomes if outcome.message]
        failures = [outcome for outcome in outcomes if not outcome.success]

        if len(outcomes) == 1:
            error = failures[0].error if failures else None
        else:
            error = "\n".join(
                f"{index}. {outcome.call.name}: {outcome.error}"
                for index, outcome in enumerate(outcomes, start=1)
                if not outcome.success
            ) or None

        if messages:
            intro = "\n".join(messages)
        elif tables:
            intro = DATA_INTRO
        elif not failures:
            intro = SUCCESS_INTRO
        else:
            intro = None

        any_success = len(failures) < len(outcomes)
        return ResponseEnvelope(
            success=not failures,
            intro_text=intro,
            tables=tables or None,
            outro_text=OUTRO if any_success else None,
            error=error,
        )
