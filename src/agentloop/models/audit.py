"""Audit entry model.

AuditEntry is the immutable record written once per protocol event. Each
entry serializes independently to one JSON line.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditEventType(str, enum.Enum):
    """Kinds of events recorded during a session."""

    SESSION_START = "session_start"
    API_REQUEST = "api_request"
    API_RESPONSE = "api_response"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    ERROR = "error"
    SESSION_END = "session_end"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEntry(BaseModel):
    """One audit log record: ``{timestamp, type, turn?, payload}``."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utcnow)
    type: AuditEventType
    turn: int | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline).

        ``turn`` is omitted for session-level events. Values that are not
        JSON-native are stringified.
        """
        record: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "type": self.type.value,
        }
        if self.turn is not None:
            record["turn"] = self.turn
        record["payload"] = self.payload
        return json.dumps(record, ensure_ascii=False, default=str)

    @classmethod
    def from_json_line(cls, line: str) -> AuditEntry:
        """Parse a line produced by :meth:`to_json_line`."""
        return cls.model_validate_json(line)
