"""Audit trail: append-only sinks, file reader and transcript replay."""

from agentloop.audit.replay import replay_transcript
from agentloop.audit.sinks import (
    AuditLog,
    JsonlAuditLog,
    MemoryAuditLog,
    read_audit_log,
    session_log_name,
)
from agentloop.models.audit import AuditEntry, AuditEventType

__all__ = [
    "AuditEntry",
    "AuditEventType",
    "AuditLog",
    "JsonlAuditLog",
    "MemoryAuditLog",
    "read_audit_log",
    "replay_transcript",
    "session_log_name",
]
