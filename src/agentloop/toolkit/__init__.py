"""Toolkit: tool schemas, the registry that executes them, and demo tools."""

from agentloop.toolkit.builtin import ECHO_SPEC, PING_SPEC, default_registry
from agentloop.toolkit.models import ToolInvocation, ToolSpec
from agentloop.toolkit.registry import ToolRegistry

__all__ = [
    "ToolSpec",
    "ToolInvocation",
    "ToolRegistry",
    "default_registry",
    "PING_SPEC",
    "ECHO_SPEC",
]
