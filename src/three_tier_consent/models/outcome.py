"""Per-stage outcome records and their terminal transitions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, model_validator

from three_tier_consent.enums import StageStatus
from three_tier_consent.schema.base import TypedBaseModel
from three_tier_consent.utilities.clock import utc_now


class MitigationMeasure(TypedBaseModel):
    """A condition that must be met before a conditional stage can clear."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    measure: str
    expected_benefit: str | float | None = Field(
        None, validation_alias=AliasChoices("expected_benefit", "expectedBenefit")
    )
    implementation_timeline: str | None = Field(
        None,
        validation_alias=AliasChoices(
            "implementation_timeline", "implementationTimeline"
        ),
    )
    retry_at: datetime | None = Field(
        None, validation_alias=AliasChoices("retry_at", "retryAt")
    )

    @model_validator(mode="before")
    @classmethod
    def _from_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"measure": value}
        return value


class StageOutcome(TypedBaseModel):
    """Normalized result of one stage evaluator.

    ``status`` starts as ``pending`` and moves to a terminal value exactly
    once, through ``set_passed``, ``set_failed``, ``set_conditional`` or
    ``mark_skipped``.
    """

    stage: int = Field(..., ge=1, le=3)
    stage_name: str
    timestamp: datetime = Field(default_factory=utc_now)
    status: StageStatus = StageStatus.PENDING
    score: float | None = None
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    rationale: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    required_mitigation: list[MitigationMeasure] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    explanation: str = ""

    def _transition(self, status: StageStatus, rationale: str) -> None:
        if self.status is not StageStatus.PENDING:
            raise RuntimeError(
                f"Stage {self.stage} outcome already resolved as {self.status.value}; "
                f"cannot move to {status.value}"
            )
        self.status = status
        self.rationale = rationale

    def set_passed(self, rationale: str) -> None:
        self._transition(StageStatus.PASSED, rationale)

    def set_failed(self, rationale: str) -> None:
        self._transition(StageStatus.FAILED, rationale)

    def set_conditional(
        self,
        rationale: str,
        mitigation: list[MitigationMeasure | dict[str, Any] | str],
    ) -> None:
        measures = [MitigationMeasure.model_validate(item) for item in mitigation]
        if not measures:
            raise ValueError("A conditional outcome requires at least one mitigation")
        self._transition(StageStatus.CONDITIONAL, rationale)
        self.required_mitigation = measures

    def mark_skipped(self, rationale: str) -> None:
        self._transition(StageStatus.SKIPPED, rationale)
