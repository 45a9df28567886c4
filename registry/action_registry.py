"""
Action Registry — Static catalog of actions the model may invoke.

Responsibility:
- Map action name -> ActionSpec (read-only after construction)
- Validate tool call arguments against the declared schema
- Export the catalog for providers (function declarations / prompt JSON)
- Check at startup that the data store implements exactly the declared actions

Prohibitions:
- No side effects
- No data access
"""

import logging
from types import MappingProxyType
from typing import Any, Iterable

from shared.errors import InvalidArgumentError, RegistryConfigError, UnknownActionError
from shared.models import ActionSpec, ArgumentSpec, ToolCall

logger = logging.getLogger(__name__)

_GEMINI_TYPES = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "object": "OBJECT",
    "array": "ARRAY",
}


class ActionRegistry:
    """Immutable registry of ActionSpecs, shared by every session."""

    def __init__(self, specs: Iterable[ActionSpec]):
        by_name: dict[str, ActionSpec] = {}
        for spec in specs:
            if spec.name in by_name:
                raise RegistryConfigError(f"Duplicate action name: {spec.name}")
            by_name[spec.name] = spec
        self._specs = MappingProxyType(by_name)
        logger.info("Action registry built with %d actions", len(by_name))

    # ─── Lookup ────────────────────────────────────────────────

    def lookup(self, name: str) -> ActionSpec | None:
        """Resolve an ActionSpec by name; None when not registered."""
        return self._specs.get(name)

    def require(self, name: str) -> ActionSpec:
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownActionError(name)
        return spec

    def is_mutating(self, name: str) -> bool:
        spec = self._specs.get(name)
        return bool(spec and spec.mutating)

    @property
    def names(self) -> list[str]:
        return list(self._specs.keys())

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    # ─── Validation ────────────────────────────────────────────

    def validate(self, tool_call: ToolCall) -> ToolCall:
        """
        Check a tool call against its spec.

        Returns a normalized ToolCall holding only declared arguments.
        Raises UnknownActionError or InvalidArgumentError.
        """
        spec = self.require(tool_call.name)
        args = tool_call.args if isinstance(tool_call.args, dict) else {}
        cleaned = self._check_fields(spec.name, spec.parameters, args, prefix="")
        return ToolCall(name=spec.name, args=cleaned)

    def _check_fields(
        self,
        action: str,
        fields: dict[str, ArgumentSpec],
        values: dict[str, Any],
        prefix: str,
    ) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for field_name, field_spec in fields.items():
            path = f"{prefix}{field_name}"
            value = values.get(field_name)
            if value is None:
                if field_spec.required:
                    raise InvalidArgumentError(action, path, "required parameter is missing")
                continue
            cleaned[field_name] = self._check_value(action, field_spec, value, path)
        return cleaned

    def _check_value(self, action: str, spec: ArgumentSpec, value: Any, path: str) -> Any:
        kind = spec.type
        if kind == "string":
            if not isinstance(value, str):
                raise InvalidArgumentError(action, path, f"expected string, got {type(value).__name__}")
        elif kind == "number":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgumentError(action, path, f"expected number, got {type(value).__name__}")
        elif kind == "integer":
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidArgumentError(action, path, f"expected integer, got {type(value).__name__}")
        elif kind == "boolean":
            if not isinstance(value, bool):
                raise InvalidArgumentError(action, path, f"expected boolean, got {type(value).__name__}")
        elif kind == "object":
            if not isinstance(value, dict):
                raise InvalidArgumentError(action, path, f"expected object, got {type(value).__name__}")
            if spec.properties:
                value = self._check_fields(action, spec.properties, value, prefix=f"{path}.")
        elif kind == "array":
            if not isinstance(value, list):
                raise InvalidArgumentError(action, path, f"expected array, got {type(value).__name__}")
            if spec.items is not None:
                value = [
                    self._check_value(action, spec.items, item, f"{path}[{index}]")
                    for index, item in enumerate(value)
                ]

        if spec.enum is not None and value not in spec.enum:
            allowed = ", ".join(str(item) for item in spec.enum)
            raise InvalidArgumentError(action, path, f"must be one of: {allowed}")
        return value

    # ─── Startup checks ────────────────────────────────────────

    def verify_capability(self, supported_actions: Iterable[str]) -> None:
        """Fail fast when the data store and the catalog disagree."""
        supported = set(supported_actions)
        declared = set(self._specs.keys())
        missing = sorted(declared - supported)
        undeclared = sorted(supported - declared)
        if missing or undeclared:
            raise RegistryConfigError(
                "Data store does not match action catalog "
                f"(missing handlers: {missing or '-'}; undeclared handlers: {undeclared or '-'})"
            )

    # ─── Export ────────────────────────────────────────────────

    def function_declarations(self) -> list[dict[str, Any]]:
        """Gemini-style `function_declarations` payload."""
        declarations: list[dict[str, Any]] = []
        for spec in self._specs.values():
            declaration: dict[str, Any] = {"name": spec.name, "description": spec.description}
            if spec.parameters:
                declaration["parameters"] = _object_schema(spec.parameters)
            declarations.append(declaration)
        return declarations

    def catalog(self) -> list[dict[str, Any]]:
        """Plain description of every action (prompt text, /v1/actions)."""
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "entity": spec.entity,
                "operation": spec.operation,
                "mutating": spec.mutating,
                "parameters": {
                    name: arg.model_dump(exclude_none=True, exclude_defaults=True)
                    for name, arg in spec.parameters.items()
                },
            }
            for spec in self._specs.values()
        ]


def _object_schema(fields: dict[str, ArgumentSpec]) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "type": "OBJECT",
        "properties": {name: _argument_schema(arg) for name, arg in fields.items()},
    }
    required = [name for name, arg in fields.items() if arg.required]
    if required:
        schema["required"] = required
    return schema


def _argument_schema(arg: ArgumentSpec) -> dict[str, Any]:
    if arg.type == "object":
        schema = _object_schema(arg.properties or {})
    else:
        schema = {"type": _GEMINI_TYPES[arg.type]}
    if arg.type == "array" and arg.items is not None:
        schema["items"] = _argument_schema(arg.items)
    if arg.description:
        schema["description"] = arg.description
    if arg.enum is not None:
        schema["enum"] = [str(item) for item in arg.enum]
    return schema
