"""Persisted audit snapshots and the filters used to query them."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator

from three_tier_consent.constants import AUDIT_MARKER
from three_tier_consent.enums import OverallStatus, RetentionClass, StageKey
from three_tier_consent.models.outcome import MitigationMeasure, StageOutcome
from three_tier_consent.models.result import (
    AggregateResult,
    AuditTrailEntry,
    BlockingIssue,
    OverrideRecord,
)
from three_tier_consent.schema.base import TypedBaseModel
from three_tier_consent.utilities.clock import ensure_utc, utc_now
from three_tier_consent.utilities.ids import new_entry_id


class AuditEntry(TypedBaseModel):
    """Write-once snapshot of a decided result."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entry_id: str = Field(default_factory=new_entry_id)
    recorded_at: datetime = Field(default_factory=utc_now)
    result_id: str
    action_id: str
    action_kind: str = ""
    overall_status: OverallStatus
    decision_rationale: str = ""
    stage_outcomes: dict[StageKey, StageOutcome | None]
    required_actions: list[MitigationMeasure] = Field(default_factory=list)
    blocking_issues: list[BlockingIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    audit_trail: list[AuditTrailEntry] = Field(default_factory=list)
    emergency_override: OverrideRecord | None = None
    resumed_from: str | None = None
    retention_days: int = Field(..., ge=1)
    retention_class: RetentionClass = RetentionClass.STANDARD
    marker: str = AUDIT_MARKER

    @field_validator("recorded_at")
    @classmethod
    def _recorded_at_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def from_result(
        cls,
        result: AggregateResult,
        *,
        retention_days: int,
        retention_class: RetentionClass = RetentionClass.STANDARD,
        action_kind: str | None = None,
        recorded_at: datetime | None = None,
    ) -> AuditEntry:
        """Snapshot ``result``; later changes to the live result are not seen."""
        snapshot = result.model_copy(deep=True)
        return cls(
            recorded_at=recorded_at or utc_now(),
            result_id=snapshot.result_id,
            action_id=snapshot.action_id,
            action_kind=action_kind if action_kind is not None else snapshot.action_kind,
            overall_status=snapshot.overall_status,
            decision_rationale=snapshot.decision_rationale,
            stage_outcomes=snapshot.stage_outcomes,
            required_actions=snapshot.required_actions,
            blocking_issues=snapshot.blocking_issues,
            warnings=snapshot.warnings,
            audit_trail=snapshot.audit_trail,
            emergency_override=snapshot.emergency_override,
            resumed_from=snapshot.resumed_from,
            retention_days=retention_days,
            retention_class=retention_class,
        )

    def to_result(self) -> AggregateResult:
        """Rebuild a live result from this snapshot, e.g. to apply an override."""
        data = self.model_copy(deep=True)
        return AggregateResult(
            result_id=data.result_id,
            action_id=data.action_id,
            action_kind=data.action_kind,
            overall_status=data.overall_status,
            stage_outcomes=data.stage_outcomes,
            decision_rationale=data.decision_rationale,
            required_actions=data.required_actions,
            blocking_issues=data.blocking_issues,
            warnings=data.warnings,
            audit_trail=data.audit_trail,
            emergency_override=data.emergency_override,
            resumed_from=data.resumed_from,
        )


class AuditQuery(TypedBaseModel):
    """Filters for ``AuditSink.query``; unset fields match everything."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    start: datetime | None = None
    end: datetime | None = None
    status: OverallStatus | None = None
    action_kind: str | None = None
    action_id: str | None = None
    result_id: str | None = None

    @field_validator("start", "end")
    @classmethod
    def _bounds_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @classmethod
    def from_mapping(cls, filters: dict[str, Any] | None) -> AuditQuery:
        return cls.model_validate(filters or {})

    def matches(self, entry: AuditEntry) -> bool:
        if self.start is not None and entry.recorded_at < self.start:
            return False
        if self.end is not None and entry.recorded_at > self.end:
            return False
        if self.status is not None and entry.overall_status is not self.status:
            return False
        if self.action_kind and self.action_kind not in entry.action_kind:
            return False
        if self.action_id is not None and entry.action_id != self.action_id:
            return False
        if self.result_id is not None and entry.result_id != self.result_id:
            return False
        return True
