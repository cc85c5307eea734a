"""Data model of the three-tier consent pipeline."""

from __future__ import annotations

from .action import ProposedAction
from .audit import AuditEntry, AuditQuery
from .outcome import MitigationMeasure, StageOutcome
from .result import (
    AggregateResult,
    AuditTrailEntry,
    BlockingIssue,
    ContinuationToken,
    OverrideRecord,
    OverrideRequest,
)

__all__ = [
    "AggregateResult",
    "AuditEntry",
    "AuditQuery",
    "AuditTrailEntry",
    "BlockingIssue",
    "ContinuationToken",
    "MitigationMeasure",
    "OverrideRecord",
    "OverrideRequest",
    "ProposedAction",
    "StageOutcome",
]
