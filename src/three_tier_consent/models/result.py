"""Aggregate pipeline result, override records and continuation tokens."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
import hashlib
from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator

from three_tier_consent.constants import (
    DEFAULT_MIN_APPROVERS,
    MIN_JUSTIFICATION_LENGTH,
)
from three_tier_consent.enums import (
    STAGE_ORDER,
    AuditEvent,
    OverallStatus,
    StageKey,
)
from three_tier_consent.models.outcome import MitigationMeasure, StageOutcome
from three_tier_consent.schema.base import TypedBaseModel
from three_tier_consent.utilities.clock import ensure_utc, utc_now
from three_tier_consent.utilities.final import final_class
from three_tier_consent.utilities.ids import new_result_id


class BlockingIssue(TypedBaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    stage: int
    stage_name: str
    issue: str
    details: dict[str, Any] = Field(default_factory=dict)


class AuditTrailEntry(TypedBaseModel):
    """One event in a result's ordered audit trail."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: datetime = Field(default_factory=utc_now)
    event: AuditEvent
    status: str
    rationale: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


class OverrideRequest(TypedBaseModel):
    """Caller request to force approval of a result."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    justification: str
    approvers: list[str] = Field(default_factory=list)
    circumstances: str | None = None


@final_class
class OverrideRecord(TypedBaseModel):
    """Write-once record of an approved emergency override."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: datetime = Field(default_factory=utc_now)
    result_id: str
    action_id: str
    justification: str
    approvers: list[str]
    required_approvers: int = Field(DEFAULT_MIN_APPROVERS, ge=1)
    min_justification_length: int = Field(MIN_JUSTIFICATION_LENGTH, ge=1)
    circumstances: str = "unspecified"
    approved: bool = True
    audit_retention_years: int = Field(10, ge=1)

    @field_validator("approvers", mode="before")
    @classmethod
    def _distinct_approvers(cls, value: Any) -> Any:
        if not isinstance(value, list | tuple):
            return value
        seen: list[str] = []
        for approver in value:
            name = str(approver).strip()
            if name and name not in seen:
                seen.append(name)
        return seen

    @field_validator("circumstances", mode="before")
    @classmethod
    def _default_circumstances(cls, value: Any) -> Any:
        return value or "unspecified"

    @model_validator(mode="after")
    def _check_gates(self) -> OverrideRecord:
        if len(self.justification.strip()) < self.min_justification_length:
            raise ValueError(
                "Override justification must be at least "
                f"{self.min_justification_length} characters"
            )
        if len(self.approvers) < self.required_approvers:
            raise ValueError(
                f"Override requires at least {self.required_approvers} approvers"
            )
        return self


@final_class
class ContinuationToken(TypedBaseModel):
    """Handle a caller uses to resume a run whose consent stage was deferred."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    action_id: str
    result_id: str
    stage: int = 2
    retry_at: datetime
    issued_at: datetime
    reason: str
    token: str

    @staticmethod
    def _digest(
        action_id: str,
        result_id: str,
        stage: int,
        retry_at: datetime,
        issued_at: datetime,
        reason: str,
    ) -> str:
        material = "|".join(
            [
                action_id,
                result_id,
                str(stage),
                ensure_utc(retry_at).isoformat(),
                ensure_utc(issued_at).isoformat(),
                reason,
            ]
        )
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    @classmethod
    def issue(
        cls,
        *,
        action_id: str,
        result_id: str,
        retry_at: datetime,
        reason: str,
        issued_at: datetime | None = None,
        stage: int = 2,
    ) -> ContinuationToken:
        issued = ensure_utc(issued_at or utc_now())
        retry = ensure_utc(retry_at)
        return cls(
            action_id=action_id,
            result_id=result_id,
            stage=stage,
            retry_at=retry,
            issued_at=issued,
            reason=reason,
            token=cls._digest(action_id, result_id, stage, retry, issued, reason),
        )

    def verify(self) -> bool:
        expected = self._digest(
            self.action_id,
            self.result_id,
            self.stage,
            self.retry_at,
            self.issued_at,
            self.reason,
        )
        return expected == self.token


def _empty_slots() -> dict[StageKey, StageOutcome | None]:
    return {key: None for key in STAGE_ORDER}


class AggregateResult(TypedBaseModel):
    """Full outcome of one pipeline run.

    Stage slots are filled in stage order through ``record_stage``; the
    decision fields are owned by the aggregator.
    """

    result_id: str = Field(default_factory=new_result_id)
    action_id: str
    action_kind: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    overall_status: OverallStatus = OverallStatus.PENDING
    stage_outcomes: dict[StageKey, StageOutcome | None] = Field(
        default_factory=_empty_slots
    )
    decision_rationale: str = ""
    required_actions: list[MitigationMeasure] = Field(default_factory=list)
    blocking_issues: list[BlockingIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    audit_trail: list[AuditTrailEntry] = Field(default_factory=list)
    emergency_override: OverrideRecord | None = None
    continuation: ContinuationToken | None = None
    resumed_from: str | None = None

    @field_validator("stage_outcomes")
    @classmethod
    def _all_slots_present(
        cls, value: dict[StageKey, StageOutcome | None]
    ) -> dict[StageKey, StageOutcome | None]:
        return {key: value.get(key) for key in STAGE_ORDER}

    def record_stage(self, key: StageKey, outcome: StageOutcome) -> None:
        """Store a resolved outcome and append its completion event."""
        if self.stage_outcomes.get(key) is not None:
            raise RuntimeError(f"Stage slot {key.value} is already filled")
        if not outcome.status.resolved:
            raise RuntimeError(f"Stage {key.value} outcome is still pending")
        self.stage_outcomes[key] = outcome
        self.append_audit(
            AuditEvent.for_stage(key.number),
            outcome.status.value,
            outcome.rationale,
            {
                "stage": outcome.stage,
                "stage_name": outcome.stage_name,
                "score": outcome.score,
                "confidence": outcome.confidence,
            },
        )

    def append_audit(
        self,
        event: AuditEvent,
        status: str,
        rationale: str,
        details: dict[str, Any] | None = None,
    ) -> AuditTrailEntry:
        entry = AuditTrailEntry(
            event=event, status=status, rationale=rationale, details=details or {}
        )
        self.audit_trail.append(entry)
        return entry

    def outcome(self, key: StageKey) -> StageOutcome | None:
        return self.stage_outcomes.get(key)

    def recorded_outcomes(self) -> Iterator[tuple[StageKey, StageOutcome]]:
        """Yield filled slots in stage order."""
        for key in STAGE_ORDER:
            outcome = self.stage_outcomes.get(key)
            if outcome is not None:
                yield key, outcome

    @property
    def is_complete(self) -> bool:
        return all(self.stage_outcomes.get(key) is not None for key in STAGE_ORDER)
