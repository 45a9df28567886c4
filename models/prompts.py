"""
System prompts and prompt serialization for model providers.
"""

from __future__ import annotations

import json
from typing import Any

from shared.models import Message

STRUCTURED_SYSTEM_PROMPT = (
    'You are "POLCER AI Agent", a smart, proactive and friendly assistant for the '
    "administrators of Politeknik Negeri Pontianak. Your main job is to translate the "
    "admin's request into one or more calls of the available functions. Always answer "
    "with function calls when a function fits. If none fits, answer with a short text. "
    "Never ask for confirmation yourself; the backend takes care of that. "
    "Reply in the language the admin uses."
)

FREE_TEXT_SYSTEM_PROMPT = """You are a precise and silent JSON API assistant. Your ONLY job is to analyze the user's request and the available actions, then generate a JSON object.

RULES:
1. ALWAYS respond with a JSON object. No conversational text, no apologies, no explanations.
2. To view, show, list or check data, use one or more "show" or "get" actions.
3. To ask whether data exists, use "checkTableCounts".
4. For an ambiguous request about users, call "showUsers" for 'mahasiswa' AND for 'dosen'.
5. To add, create or insert data, use an "add" action. To change data, use an "update" action. To remove data, use a "delete" action.
6. If the user is just chatting, answer with "text_response".
7. Your JSON MUST have ONE of these root keys:
   {"tool_calls": [{"name": "...", "args": {...}}]}  for ALL data operations
   {"text_response": "..."}                          for simple conversation

EXAMPLES:
User: "hello"
JSON: {"text_response": "Hello! How can I help you?"}
User: "show all departments"
JSON: {"tool_calls": [{"name": "showJurusan", "args": {}}]}
User: "show departments and study programs"
JSON: {"tool_calls": [{"name": "showJurusan", "args": {}}, {"name": "showProdi", "args": {}}]}
User: "delete the Civil Engineering department"
JSON: {"tool_calls": [{"name": "deleteJurusan", "args": {"name": "Civil Engineering"}}]}
User: "show the lecturers and delete the student with NIM 12345"
JSON: {"tool_calls": [{"name": "showUsers", "args": {"role": "dosen"}}, {"name": "deleteUserByNim", "args": {"nim": "12345"}}]}"""


def build_free_text_prompt(
    history: list[Message],
    system_prompt: str,
    catalog: list[dict[str, Any]],
) -> str:
    """Serialize the whole conversation into a single completion prompt."""
    latest_index = None
    for index in range(len(history) - 1, -1, -1):
        if history[index].role == "user":
            latest_index = index
            break

    latest_request = history[latest_index].content if latest_index is not None else ""
    previous = history[:latest_index] if latest_index is not None else list(history)
    previous_lines = [f"{message.role}: {message.content}" for message in previous if message.content]

    actions = [
        {"name": item["name"], "description": item["description"], "parameters": item["parameters"]}
        for item in catalog
    ]
    return (
        f"{system_prompt}\n\n"
        f"AVAILABLE ACTIONS:\n{json.dumps(actions, ensure_ascii=False)}\n\n"
        f"PREVIOUS CONVERSATION:\n{chr(10).join(previous_lines) or 'N/A'}\n\n"
        f'LATEST USER REQUEST:\n"{latest_request}"\n\n'
        "YOUR JSON RESPONSE:\n"
    )
