"""Centralized semantic enums for the three-tier consent pipeline."""

from __future__ import annotations

from enum import Enum


class StageStatus(str, Enum):
    """Outcome of a single stage evaluator."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    CONDITIONAL = "conditional"
    SKIPPED = "skipped"

    @property
    def resolved(self) -> bool:
        return self is not StageStatus.PENDING


class OverallStatus(str, Enum):
    """Decision assigned to a whole pipeline run."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONDITIONAL = "conditional"
    EMERGENCY_OVERRIDE = "emergency_override"


class StageKey(str, Enum):
    """Slots of the aggregate result, one per stage, in execution order."""

    BIOCENTRIC = "stage1_biocentric"
    CONSENT = "stage2_consent"
    INTERGENERATIONAL = "stage3_intergenerational"

    @property
    def number(self) -> int:
        return STAGE_ORDER.index(self) + 1


STAGE_ORDER: tuple[StageKey, ...] = (
    StageKey.BIOCENTRIC,
    StageKey.CONSENT,
    StageKey.INTERGENERATIONAL,
)


class OrchestratorState(str, Enum):
    """States the orchestrator walks through for one action."""

    NOT_STARTED = "not_started"
    STAGE1_RUNNING = "stage1_running"
    STAGE1_DONE = "stage1_done"
    STAGE2_RUNNING = "stage2_running"
    STAGE2_DONE = "stage2_done"
    STAGE3_RUNNING = "stage3_running"
    STAGE3_DONE = "stage3_done"
    DECIDED = "decided"


class AuditEvent(str, Enum):
    """Event names written to a result's audit trail."""

    STAGE_1_COMPLETED = "stage_1_completed"
    STAGE_2_COMPLETED = "stage_2_completed"
    STAGE_3_COMPLETED = "stage_3_completed"
    FINAL_DECISION = "final_decision"
    EMERGENCY_OVERRIDE = "emergency_override_approved"

    @classmethod
    def for_stage(cls, stage: int) -> AuditEvent:
        return cls(f"stage_{stage}_completed")


class ConsentStatus(str, Enum):
    """Answers a human reviewer can give to a confirmation request."""

    CONFIRMED = "confirmed"
    VETOED = "vetoed"
    DEFERRED = "deferred"


class ProjectionVerdict(str, Enum):
    """Verdicts reported by the intergenerational projection collaborator."""

    APPROVED = "approved"
    CONDITIONAL = "conditional"
    REJECTED = "rejected"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class RetentionClass(str, Enum):
    """How long an audit entry must be kept."""

    STANDARD = "standard"
    EXTENDED = "extended"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"
