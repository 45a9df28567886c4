"""
Tool-call parser for free-text model output.

Local models are asked to answer with one JSON object, but they frequently
wrap it in prose or markdown fences, or ignore the format altogether.
Parsing is best-effort and never raises:

1. first balanced `{...}` substring that decodes to a JSON object
2. `tool_calls` array of `{name, args}`      -> ToolCall list
3. single `{name, args}` object              -> one ToolCall
4. `text_response` string                    -> TextSegment
5. anything else                             -> raw text as TextSegment
"""

from __future__ import annotations

import json
import logging
from typing import Any

from shared.models import Segment, TextSegment, ToolCall

logger = logging.getLogger(__name__)


def _balanced_object_end(text: str, start: int) -> int | None:
    """Index just past the `}` closing the `{` at `start`, string-aware."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def extract_first_json_object(text: str) -> dict[str, Any] | None:
    """Return the first balanced brace-delimited JSON object in `text`."""
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        end = _balanced_object_end(text, start)
        if end is not None:
            try:
                candidate = json.loads(text[start:end])
            except json.JSONDecodeError:
                candidate = None
            if isinstance(candidate, dict):
                return candidate
        start = text.find("{", start + 1)
    return None


def _to_tool_call(raw: Any) -> ToolCall | None:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    args = raw.get("args", {})
    if args is None:
        args = {}
    if not isinstance(args, dict):
        return None
    return ToolCall(name=name.strip(), args=args)


def parse_model_output(text: str) -> list[Segment]:
    """Map raw model text to segments following the fixed precedence order."""
    raw_text = (text or "").strip()
    payload = extract_first_json_object(raw_text)

    if payload is not None:
        raw_calls = payload.get("tool_calls")
        if isinstance(raw_calls, list):
            calls = [call for call in (_to_tool_call(item) for item in raw_calls) if call is not None]
            if calls:
                return list(calls)
            logger.info("tool_calls present but no entry had a valid {name, args} shape")

        single = _to_tool_call(payload)
        if single is not None:
            return [single]

        text_response = payload.get("text_response")
        if isinstance(text_response, str) and text_response.strip():
            return [TextSegment(text=text_response.strip())]

        logger.info("JSON found in model output but no known shape matched; using raw text")
    elif raw_text:
        logger.info("No JSON object in model output; using raw text")

    return [TextSegment(text=raw_text)] if raw_text else []
