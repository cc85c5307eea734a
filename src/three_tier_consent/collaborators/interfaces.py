"""Contracts for the external collaborators the stages call into.

Every method may be a plain function or a coroutine function; stages await
the result only when it is awaitable. Responses may be returned as the models
below or as plain mappings with the same fields (camelCase keys accepted).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol

from pydantic import AliasChoices, ConfigDict, Field

from three_tier_consent.enums import AlertSeverity
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.audit import AuditEntry, AuditQuery
from three_tier_consent.models.outcome import MitigationMeasure
from three_tier_consent.schema.base import TypedBaseModel
from three_tier_consent.utilities.awaitables import MaybeAwaitable
from three_tier_consent.utilities.clock import utc_now

_RESPONSE_CONFIG = ConfigDict(extra="ignore", populate_by_name=True)


class EcologicalAssessment(TypedBaseModel):
    model_config = _RESPONSE_CONFIG

    overall_score: float = Field(
        ..., validation_alias=AliasChoices("overall_score", "overallScore")
    )
    confidence: float = Field(..., ge=0.0, le=1.0)
    dimension_scores: dict[str, float] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("dimension_scores", "dimensionScores"),
    )
    net_harm: float = Field(..., validation_alias=AliasChoices("net_harm", "netHarm"))
    mitigation_measures: list[MitigationMeasure] = Field(
        default_factory=list,
        validation_alias=AliasChoices("mitigation_measures", "mitigationMeasures"),
    )
    ecosystem_integrity: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("ecosystem_integrity", "ecosystemIntegrity"),
    )


class ConsentDetail(TypedBaseModel):
    model_config = _RESPONSE_CONFIG

    summary: str = ""
    rationale: str = ""
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    concerns: list[str] = Field(default_factory=list)


class ConsentResponse(TypedBaseModel):
    """Reviewer answer; ``status`` outside confirmed/vetoed/deferred is unclear."""

    model_config = _RESPONSE_CONFIG

    status: str
    deliberation_seconds: float | None = Field(
        None,
        validation_alias=AliasChoices("deliberation_seconds", "deliberationSeconds"),
    )
    response: ConsentDetail = Field(default_factory=ConsentDetail)
    defer_until: datetime | None = Field(
        None, validation_alias=AliasChoices("defer_until", "deferUntil")
    )
    reason: str | None = None


class GenerationRisk(TypedBaseModel):
    model_config = _RESPONSE_CONFIG

    generation: int = Field(..., ge=1)
    year_range: str = Field(
        "", validation_alias=AliasChoices("year_range", "yearRange")
    )
    ecological: float
    resource: float
    climate: float
    cultural: float
    genetic: float
    overall_risk: str = Field(
        "low", validation_alias=AliasChoices("overall_risk", "overallRisk")
    )


class TippingPoint(TypedBaseModel):
    model_config = _RESPONSE_CONFIG

    description: str
    probability: float = Field(..., ge=0.0, le=1.0)
    horizon_years: int | None = Field(
        None, validation_alias=AliasChoices("horizon_years", "horizonYears")
    )


class Finding(TypedBaseModel):
    model_config = _RESPONSE_CONFIG

    category: str
    finding: str
    severity: str = "low"


class ProjectionReport(TypedBaseModel):
    model_config = _RESPONSE_CONFIG

    verdict: str
    rationale: str = ""
    overall_score: float = Field(
        ..., validation_alias=AliasChoices("overall_score", "overallScore")
    )
    equity_score: float = Field(
        ..., validation_alias=AliasChoices("equity_score", "equityScore")
    )
    per_generation_risk: list[GenerationRisk] = Field(
        default_factory=list,
        validation_alias=AliasChoices("per_generation_risk", "perGenerationRisk"),
    )
    tipping_points: list[TippingPoint] = Field(
        default_factory=list,
        validation_alias=AliasChoices("tipping_points", "tippingPoints"),
    )
    required_modifications: list[MitigationMeasure] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "required_modifications", "requiredModifications"
        ),
    )
    critical_findings: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("critical_findings", "criticalFindings"),
    )
    key_findings: list[Finding] = Field(
        default_factory=list,
        validation_alias=AliasChoices("key_findings", "keyFindings"),
    )
    monitoring_requirements: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "monitoring_requirements", "monitoringRequirements"
        ),
    )


class OperationalAlert(TypedBaseModel):
    """High-visibility notification raised outside normal logging."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: datetime = Field(default_factory=utc_now)
    severity: AlertSeverity = AlertSeverity.CRITICAL
    title: str
    message: str
    result_id: str
    action_id: str
    details: dict[str, Any] = Field(default_factory=dict)


class EcologicalScorer(Protocol):
    def assess(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> MaybeAwaitable[EcologicalAssessment | Mapping[str, Any]]:
        """Score the ecological impact of ``action``."""


class ConsentRequester(Protocol):
    def request_confirmation(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> MaybeAwaitable[ConsentResponse | Mapping[str, Any]]:
        """Ask a human reviewer to confirm ``action``."""


class VulnerabilityWindow(Protocol):
    def is_vulnerable(
        self, user_profile: Mapping[str, Any], now: datetime
    ) -> MaybeAwaitable[bool]:
        """Return True when ``now`` falls inside a vulnerability window."""

    def next_optimal_window(
        self, user_profile: Mapping[str, Any]
    ) -> MaybeAwaitable[datetime]:
        """Return the next moment a consent request may be made."""


class IntergenerationalProjector(Protocol):
    def project(
        self,
        action: ProposedAction,
        generation_count: int,
        years_per_generation: int,
    ) -> MaybeAwaitable[ProjectionReport | Mapping[str, Any]]:
        """Project the consequences of ``action`` over future generations."""


class AuditSink(Protocol):
    def append(self, entry: AuditEntry) -> MaybeAwaitable[None]:
        """Persist ``entry`` as one atomic record."""

    def query(self, filters: AuditQuery) -> MaybeAwaitable[Sequence[AuditEntry]]:
        """Return stored entries matching ``filters`` in append order."""


class AlertSink(Protocol):
    def notify(self, alert: OperationalAlert) -> MaybeAwaitable[None]:
        """Raise ``alert`` to operators."""
