"""
Shared Pydantic models for all layers.
Specs and tool calls are immutable (frozen) after creation.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


ArgumentType = Literal["string", "number", "integer", "boolean", "object", "array"]
ActionOperation = Literal["add", "show", "update", "delete", "assign", "unassign", "meta"]
Role = Literal["user", "assistant"]


# ─── Entry Layer ───────────────────────────────────────────────

class EntryRequest(BaseModel):
    """Normalized input from any entry adapter."""
    model_config = {"frozen": True}

    session_id: str
    input_text: str
    provider: str | None = None


# ─── Action Registry ───────────────────────────────────────────

class ArgumentSpec(BaseModel):
    """Declared schema of one action parameter."""
    model_config = {"frozen": True}

    type: ArgumentType
    required: bool = False
    description: str = ""
    enum: list[Any] | None = None
    items: ArgumentSpec | None = Field(default=None, description="Item schema when type='array'")
    properties: dict[str, ArgumentSpec] | None = Field(
        default=None, description="Nested fields when type='object'"
    )


class ActionSpec(BaseModel):
    """A named backend action the model may invoke."""
    model_config = {"frozen": True}

    name: str = Field(..., description="Unique identifier, e.g. 'deleteJurusan'")
    description: str = ""
    entity: str = Field(default="", description="Human label of the entity, e.g. 'Jurusan'")
    operation: ActionOperation = "meta"
    parameters: dict[str, ArgumentSpec] = Field(default_factory=dict)
    mutating: bool = Field(default=False, description="Invocation requires human confirmation")
    key_fields: list[str] = Field(
        default_factory=list,
        description="Arguments shown to the user when asking for confirmation",
    )

    @property
    def required_parameters(self) -> list[str]:
        return [name for name, spec in self.parameters.items() if spec.required]


# ─── Model Adapter output ──────────────────────────────────────

class ToolCall(BaseModel):
    """Structured request to execute one named action."""
    model_config = {"frozen": True}

    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class TextSegment(BaseModel):
    """Free text produced by the model."""
    model_config = {"frozen": True}

    text: str


Segment = Union[TextSegment, ToolCall]


# ─── Data store ────────────────────────────────────────────────

class OperationResult(BaseModel):
    """Outcome of one data store operation."""
    model_config = {"frozen": True}

    rows: list[dict[str, Any]] | None = Field(default=None, description="Result set for reads")
    affected: int | None = Field(default=None, description="Affected row count for writes")
    message: str | None = Field(default=None, description="Human-readable effect of a write")


class ImportReport(BaseModel):
    """Summary of a bulk user import."""
    model_config = {"frozen": True}

    total_rows: int
    success_count: int
    errors: list[str] = Field(default_factory=list)


# ─── Presentation contract ─────────────────────────────────────

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PendingActionSet(_CamelModel):
    """Tool calls held by the confirmation gate until the user decides."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    session_id: str
    actions: list[ToolCall]
    prompt: str
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class DataTable(_CamelModel):
    title: str
    rows: list[dict[str, Any]] = Field(default_factory=list)


class ResponseEnvelope(_CamelModel):
    """The only structure handed to the presentation layer."""

    success: bool
    intro_text: str | None = None
    tables: list[DataTable] | None = None
    outro_text: str | None = None
    error: str | None = None
    needs_confirmation: bool | None = None
    confirmation_prompt: str | None = None
    pending_actions: PendingActionSet | None = None

    @model_validator(mode="after")
    def _confirmation_consistency(self) -> ResponseEnvelope:
        has_pending = self.pending_actions is not None and len(self.pending_actions.actions) > 0
        if bool(self.needs_confirmation) != has_pending:
            raise ValueError("needs_confirmation must be true exactly when pending_actions is non-empty")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Serialize for HTTP/JSON consumers (camelCase, no empty fields)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Message(BaseModel):
    """One entry of a session's conversation history."""

    role: Role
    content: str
    response: ResponseEnvelope | None = None


class ApprovalDecision(BaseModel):
    """Explicit approve/reject signal from a UI button."""
    model_config = {"frozen": True}

    approved: bool
    pending_id: str | None = None


# ─── Model Layer (Policy) ──────────────────────────────────────

class ModelPolicy(BaseModel):
    """Per-call settings for a model provider."""
    model_config = {"frozen": True}

    model_name: str
    temperature: float = 0.0
    timeout_seconds: float = 60.0
    json_mode: bool = True
