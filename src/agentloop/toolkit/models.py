"""Toolkit data models.

ToolSpec describes a tool to the completion service. ToolInvocation records
one dispatched call for the session result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, MappingProxyType):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class ToolSpec:
    """A single tool definition for LLM consumption.

    Immutable after construction: the input schema is deep-frozen, and the
    converters hand out fresh dict copies.

    Attributes:
        name: Tool name (e.g. "ping", "echo"). Unique within a registry.
        description: Human-readable description of when/why to use this tool.
        input_schema: JSON Schema dict describing tool parameters.
    """

    name: str
    description: str
    input_schema: Any = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_schema", _freeze(dict(self.input_schema)))

    @property
    def schema(self) -> dict[str, Any]:
        """Return a mutable copy of the input schema."""
        return _thaw(self.input_schema)

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(self.input_schema.get("required", ()))

    @property
    def properties(self) -> tuple[str, ...]:
        return tuple(self.input_schema.get("properties", {}).keys())

    def to_anthropic(self) -> dict:
        """Convert to Anthropic tool-use format.

        Returns:
            Dict with "name", "description", and "input_schema".
        """
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.schema,
        }

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format.

        Returns:
            Dict with "type": "function" and nested "function" object.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.schema,
            },
        }


@dataclass(frozen=True)
class ToolInvocation:
    """Record of one dispatched tool call.

    Attributes:
        turn: Turn in which the call was dispatched.
        tool_use_id: Id of the ToolUse block being answered.
        name: Tool name requested by the model.
        input: Raw arguments supplied by the model (normally a dict).
        output: Result string, or the error description on failure.
        is_error: Whether the invocation failed.
        duration_ms: Wall-clock execution time in milliseconds.
    """

    turn: int
    tool_use_id: str
    name: str
    input: Any
    output: str = ""
    is_error: bool = False
    duration_ms: int = 0
