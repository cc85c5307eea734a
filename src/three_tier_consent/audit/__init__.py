"""Audit and alert sinks."""

from __future__ import annotations

from .alerts import InMemoryAlertSink, LoggingAlertSink
from .sinks import InMemoryAuditSink, JsonlAuditSink

__all__ = [
    "InMemoryAlertSink",
    "InMemoryAuditSink",
    "JsonlAuditSink",
    "LoggingAlertSink",
]
