"""ToolRegistry: binds tool schemas to executable implementations.

Provides registration in a stable order, the schema list sent to the
completion service, and ``invoke()`` which validates input against the
declared required fields before calling the implementation.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from agentloop.exceptions import (
    DuplicateToolError,
    InvalidArgumentsError,
    ToolExecutionError,
    UnknownToolError,
)
from agentloop.toolkit.models import ToolSpec

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Read-only (after setup) mapping of tool name to spec and implementation.

    Implementations are called with keyword arguments restricted to the
    properties declared in the schema, so arguments the model invents are
    dropped rather than passed through.

    Usage::

        registry = ToolRegistry()
        registry.register(
            ToolSpec("echo", "Echo back the message", {
                "type": "object",
                "properties": {"message": {"type": "string"}},
                "required": ["message"],
            }),
            lambda message: f"Echo: {message}",
        )
        registry.invoke("echo", {"message": "hi"})  # "Echo: hi"
    """

    def __init__(self) -> None:
        self._specs: dict[str, ToolSpec] = {}
        self._impls: dict[str, Callable[..., object]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def register(self, spec: ToolSpec, implementation: Callable[..., object]) -> None:
        """Bind a unique tool name to its schema and implementation.

        Raises:
            DuplicateToolError: If the name is already registered.
        """
        if spec.name in self._specs:
            raise DuplicateToolError(spec.name)
        self._specs[spec.name] = spec
        self._impls[spec.name] = implementation
        logger.debug("Registered tool %s", spec.name)

    def tool(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any] | None = None,
    ) -> Callable[[Callable[..., object]], Callable[..., object]]:
        """Decorator form of :meth:`register`.

        Usage::

            @registry.tool("echo", "Echo back the message", schema)
            def echo(message: str) -> str:
                return f"Echo: {message}"
        """

        def decorator(func: Callable[..., object]) -> Callable[..., object]:
            self.register(ToolSpec(name, description, input_schema or {}), func)
            return func

        return decorator

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def tool_names(self) -> list[str]:
        """Return registered tool names in registration order."""
        return list(self._specs)

    def schemas(self) -> list[ToolSpec]:
        """Return the registered specs in registration order."""
        return list(self._specs.values())

    def invoke(self, name: str, raw_input: Any) -> str:
        """Validate input and execute a tool.

        Args:
            name: Registered tool name.
            raw_input: Arguments supplied by the model; must be a dict.

        Returns:
            The implementation's result coerced to ``str``.

        Raises:
            UnknownToolError: If no tool has this name.
            InvalidArgumentsError: If the input is not a dict or lacks a
                required field.
            ToolExecutionError: If the implementation raises. The original
                exception is available as ``cause``.
        """
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownToolError(name)
        # The implementation gets its own copy so the caller's input stays intact.
        arguments = copy.deepcopy(self._validate(spec, raw_input))
        try:
            result = self._impls[name](**arguments)
        except Exception as exc:
            logger.debug("Tool %s failed: %s", name, exc, exc_info=True)
            raise ToolExecutionError(name, exc) from exc
        return str(result)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(spec: ToolSpec, raw_input: Any) -> dict[str, Any]:
        if raw_input is None:
            raw_input = {}
        if not isinstance(raw_input, dict):
            raise InvalidArgumentsError(
                spec.name,
                reason=f"expected an object, got {type(raw_input).__name__}",
            )
        missing = [f for f in spec.required_fields if f not in raw_input]
        if missing:
            raise InvalidArgumentsError(spec.name, missing=missing)
        declared = spec.properties
        if not declared:
            return dict(raw_input)
        dropped = [k for k in raw_input if k not in declared]
        if dropped:
            logger.warning(
                "Dropping undeclared argument(s) %s for tool %s", dropped, spec.name
            )
        return {k: v for k, v in raw_input.items() if k in declared}
