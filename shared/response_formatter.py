from __future__ import annotations

import re
from typing import Any

from shared.models import DataTable, ResponseEnvelope


def _round_value(value: Any, decimals: int = 2) -> Any:
    if isinstance(value, float):
        return round(value, decimals)
    return value


def _round_numbers_in_text(text: str) -> str:
    if not text:
        return ""

    def repl(match: re.Match[str]) -> str:
        try:
            return f"{float(match.group(0)):.2f}"
        except Exception:
            return match.group(0)

    return re.sub(r"-?\d+\.\d{3,}", repl, text)


def table_columns(table: DataTable) -> list[str]:
    """Union of row keys in first-seen order."""
    columns: list[str] = []
    for row in table.rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    return str(_round_value(value))


def format_table(table: DataTable) -> str:
    columns = table_columns(table)
    lines = [f"{table.title}:"]
    if not columns:
        return lines[0]
    lines.append(" | ".join(columns))
    for row in table.rows:
        lines.append(" | ".join(_cell(row.get(column)) for column in columns))
    return "\n".join(lines)


def format_envelope(envelope: ResponseEnvelope) -> str:
    """
    Plain-text rendering of an envelope (history, logs, non-rich channels):
    - intro, tables, outro in order
    - confirmation prompt when actions are pending
    - objective error line on failure
    """
    parts: list[str] = []
    if envelope.intro_text:
        parts.append(_round_numbers_in_text(envelope.intro_text.strip()))
    for table in envelope.tables or []:
        parts.append(format_table(table))
    if envelope.needs_confirmation and envelope.confirmation_prompt:
        parts.append(envelope.confirmation_prompt.strip())
    if envelope.error:
        parts.append(f"Could not complete the request: {_round_numbers_in_text(envelope.error.strip())}")
    if envelope.outro_text:
        parts.append(envelope.outro_text.strip())

    text = "\n\n".join(part for part in parts if part).strip()
    if text:
        return text
    return "Done." if envelope.success else "Could not complete the request."
