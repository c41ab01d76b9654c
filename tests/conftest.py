"""Shared test fixtures for agentloop.

Provides a deterministic tool registry and an in-memory audit log.
Fake completion clients and response builders live in tests/helpers.py.
"""

from __future__ import annotations

import pytest

from agentloop.audit import MemoryAuditLog
from agentloop.toolkit import ToolRegistry
from tests.helpers import ECHO, PING


@pytest.fixture
def registry() -> ToolRegistry:
    """Registry with a deterministic echo and ping."""
    reg = ToolRegistry()
    reg.register(ECHO, lambda message: f"Echo: {message}")
    reg.register(PING, lambda host: f"PING {host}: 64 bytes received, time=1ms")
    return reg


@pytest.fixture
def audit() -> MemoryAuditLog:
    return MemoryAuditLog()
