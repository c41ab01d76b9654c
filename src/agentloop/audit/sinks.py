"""Audit log sinks.

An audit log is a write-only, append-only record of every protocol event in
a session. ``record()`` appends synchronously and never raises: a failing
write is reported through :mod:`logging` and the session carries on.

Two sinks are provided:

- :class:`JsonlAuditLog` writes one JSON line per entry to a per-session
  file, flushing and fsyncing before ``record()`` returns.
- :class:`MemoryAuditLog` keeps entries in memory only.

Both keep an in-memory copy of what they recorded (``entries()``) and
notify listeners, which is how the CLI mirrors events to the console.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from agentloop.models.audit import AuditEntry, AuditEventType, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from typing import TextIO

logger = logging.getLogger(__name__)


@runtime_checkable
class AuditLog(Protocol):
    """Protocol for audit sinks accepted by the orchestrator."""

    def record(
        self,
        type: AuditEventType | str,
        payload: dict[str, Any] | None = None,
        turn: int | None = None,
    ) -> AuditEntry | None:
        """Append one entry; return it, or None if it could not be built."""
        ...

    def entries(self) -> list[AuditEntry]:
        """Return the entries recorded so far, oldest first."""
        ...

    @property
    def location(self) -> str | None:
        """Where the trail is stored, for display to the user."""
        ...

    def close(self) -> None:
        ...


class _BaseAuditLog:
    """Shared append/notify logic. Subclasses implement ``_write()``."""

    def __init__(
        self, listeners: list[Callable[[AuditEntry], None]] | None = None
    ) -> None:
        self._entries: list[AuditEntry] = []
        self._listeners: list[Callable[[AuditEntry], None]] = list(listeners or [])
        self._lock = threading.RLock()
        self.write_failures = 0

    @property
    def location(self) -> str | None:
        return None

    def add_listener(self, listener: Callable[[AuditEntry], None]) -> None:
        """Register a callable invoked with every recorded entry."""
        self._listeners.append(listener)

    def record(
        self,
        type: AuditEventType | str,
        payload: dict[str, Any] | None = None,
        turn: int | None = None,
    ) -> AuditEntry | None:
        """Append an entry and notify listeners.

        The entry is durably written before this returns. Failures are
        logged and counted in ``write_failures`` but never raised.
        """
        try:
            entry = AuditEntry(
                type=AuditEventType(type), turn=turn, payload=dict(payload or {})
            )
        except Exception:
            logger.warning("Could not build audit entry %r", type, exc_info=True)
            with self._lock:
                self.write_failures += 1
            return None

        with self._lock:
            try:
                self._write(entry)
            except Exception:
                self.write_failures += 1
                logger.warning(
                    "Audit write failed for %s entry", entry.type.value, exc_info=True
                )
            self._entries.append(entry)
            for listener in self._listeners:
                try:
                    listener(entry)
                except Exception:
                    logger.warning("Audit listener failed", exc_info=True)
        return entry

    def entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def close(self) -> None:
        pass

    def _write(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class MemoryAuditLog(_BaseAuditLog):
    """Audit log that only keeps entries in memory."""

    def _write(self, entry: AuditEntry) -> None:
        pass


def session_log_name(started_at: datetime) -> str:
    """Deterministic file name for a session started at ``started_at``.

    Matches ``agent-session-2026-10-18T09-33-00.123Z.log``.
    """
    stamp = started_at.strftime("%Y-%m-%dT%H-%M-%S")
    millis = started_at.microsecond // 1000
    return f"agent-session-{stamp}.{millis:03d}Z.log"


class JsonlAuditLog(_BaseAuditLog):
    """Line-delimited JSON audit file, one per session.

    The directory is created on first write. Each record is flushed and
    fsynced under the sink's lock, so concurrent tool threads never share a
    partially written line.

    Usage::

        with JsonlAuditLog("logs") as audit:
            audit.record("session_start", {"initial_prompt": "echo hi"})
        print(audit.location)
    """

    def __init__(
        self,
        log_dir: str | os.PathLike[str] = "logs",
        *,
        started_at: datetime | None = None,
        listeners: list[Callable[[AuditEntry], None]] | None = None,
        fsync: bool = True,
    ) -> None:
        super().__init__(listeners)
        self._started_at = started_at or utcnow()
        self._path = Path(log_dir) / session_log_name(self._started_at)
        self._fsync = fsync
        self._file: TextIO | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def location(self) -> str:
        return str(self._path)

    def _write(self, entry: AuditEntry) -> None:
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self._path.open("a", encoding="utf-8")
        self._file.write(entry.to_json_line() + "\n")
        self._file.flush()
        if self._fsync:
            os.fsync(self._file.fileno())

    def close(self) -> None:
        """Close the file handle. Later records reopen it in append mode."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


def read_audit_log(path: str | os.PathLike[str]) -> list[AuditEntry]:
    """Parse a JSONL audit file back into entries. Blank lines are skipped."""
    entries: list[AuditEntry] = []
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                entries.append(AuditEntry.from_json_line(line))
    return entries
