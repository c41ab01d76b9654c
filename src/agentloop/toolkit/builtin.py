"""Demo tools shipped with the CLI.

``ping`` simulates a network probe (random latency, occasional timeout);
``echo`` returns its message. Both exist to exercise multi-turn tool use
without touching the network.
"""

from __future__ import annotations

import random

from agentloop.toolkit.models import ToolSpec
from agentloop.toolkit.registry import ToolRegistry

PING_SPEC = ToolSpec(
    name="ping",
    description="Ping a host and return the result",
    input_schema={
        "type": "object",
        "properties": {
            "host": {"type": "string", "description": "The host to ping"},
        },
        "required": ["host"],
    },
)

ECHO_SPEC = ToolSpec(
    name="echo",
    description="Echo back the provided message",
    input_schema={
        "type": "object",
        "properties": {
            "message": {"type": "string", "description": "The message to echo back"},
        },
        "required": ["message"],
    },
)

# Probability that a simulated ping times out.
PING_TIMEOUT_RATE = 0.1


def make_ping(rng: random.Random | None = None):
    """Build a simulated ping drawing from ``rng`` (a fresh Random by default)."""
    rng = rng or random.Random()

    def ping(host: str) -> str:
        latency = rng.randint(1, 100)
        if rng.random() >= PING_TIMEOUT_RATE:
            return f"PING {host}: 64 bytes received, time={latency}ms"
        return f"PING {host}: Request timeout"

    return ping


def echo(message: str) -> str:
    return f"Echo: {message}"


def default_registry(rng: random.Random | None = None) -> ToolRegistry:
    """Return a registry holding ``ping`` then ``echo``."""
    registry = ToolRegistry()
    registry.register(PING_SPEC, make_ping(rng))
    registry.register(ECHO_SPEC, echo)
    return registry
