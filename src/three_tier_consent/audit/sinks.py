"""Append-only audit sinks."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
import threading
from typing import Any

from three_tier_consent.models.audit import AuditEntry, AuditQuery


def _as_query(filters: AuditQuery | Mapping[str, Any] | None) -> AuditQuery:
    if isinstance(filters, AuditQuery):
        return filters
    return AuditQuery.from_mapping(dict(filters or {}))


class InMemoryAuditSink:
    """Process-local audit log; each append is one locked operation."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def query(
        self, filters: AuditQuery | Mapping[str, Any] | None = None
    ) -> list[AuditEntry]:
        query = _as_query(filters)
        with self._lock:
            snapshot = list(self._entries)
        return [entry for entry in snapshot if query.matches(entry)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class JsonlAuditSink:
    """Audit log stored as one JSON document per line.

    Each entry is serialized up front and written with a single ``write``
    under a lock, so concurrent appends never interleave within a line.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        line = entry.model_dump_json() + "\n"
        with self._lock:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
                handle.flush()

    def query(
        self, filters: AuditQuery | Mapping[str, Any] | None = None
    ) -> list[AuditEntry]:
        query = _as_query(filters)
        if not self.path.exists():
            return []
        with self._lock:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        entries = (AuditEntry.model_validate_json(line) for line in lines if line.strip())
        return [entry for entry in entries if query.matches(entry)]
