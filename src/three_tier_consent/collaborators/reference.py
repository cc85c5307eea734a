"""Illustrative collaborators built on simplified impact formulas.

These exist so the command line and demos have something to call. They are
not scientific models; production deployments inject their own scorer,
reviewer and projector.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
import math
from typing import Any

from three_tier_consent.collaborators.interfaces import (
    ConsentDetail,
    ConsentResponse,
    EcologicalAssessment,
    Finding,
    GenerationRisk,
    ProjectionReport,
)
from three_tier_consent.enums import ConsentStatus, Priority, ProjectionVerdict
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.outcome import MitigationMeasure
from three_tier_consent.utilities.clock import Clock, utc_now

BASE_YEAR = 2025
HIGH_RISK_AREA_KM2 = 10.0


def _affected_area(action: ProposedAction) -> float:
    geographic = action.scope.get("geographic") or {}
    return float(geographic.get("area_affected_km2", 0) or 0)


def _input_quantity(action: ProposedAction, resource_type: str) -> float:
    for item in action.resource_flows.get("inputs") or []:
        if isinstance(item, Mapping) and item.get("type") == resource_type:
            return float(item.get("quantity", 0) or 0)
    return 0.0


def dimension_scores(action: ProposedAction) -> dict[str, float]:
    """Per-dimension impact; negative values are harm."""
    area = _affected_area(action)
    water = _input_quantity(action, "water")
    energy = _input_quantity(action, "energy")
    regenerative = bool(
        action.context.get("regenerative_measures")
        or action.context.get("regenerativeMeasures")
    )
    return {
        "biodiversity": -area * 2,
        "water_systems": -water / 10000,
        "soil_health": -area * 1.5,
        "air_quality": -energy / 1000,
        "carbon_cycle": -energy * 0.5 / 1000,
        "regeneration_capacity": 10.0 if regenerative else -5.0,
    }


class ReferenceEcologicalScorer:
    def __init__(self, confidence: float = 0.8) -> None:
        self.confidence = confidence

    def assess(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> EcologicalAssessment:
        dimensions = dimension_scores(action)
        overall = sum(dimensions.values()) / len(dimensions)
        harm = max(0.0, -overall)
        regeneration = max(0.0, overall)
        net_harm = harm - regeneration

        mitigation: list[MitigationMeasure] = []
        if net_harm > 0:
            if dimensions["biodiversity"] < -10:
                mitigation.append(
                    MitigationMeasure(
                        measure="Habitat restoration or protection offset",
                        expected_benefit=abs(dimensions["biodiversity"]) / 2,
                        implementation_timeline="Before action commencement",
                    )
                )
            if dimensions["carbon_cycle"] < -20:
                mitigation.append(
                    MitigationMeasure(
                        measure="Carbon sequestration program or renewable energy transition",
                        expected_benefit=abs(dimensions["carbon_cycle"]) / 2,
                        implementation_timeline="Within 6 months",
                    )
                )

        return EcologicalAssessment(
            overall_score=overall,
            confidence=self.confidence,
            dimension_scores=dimensions,
            net_harm=net_harm,
            mitigation_measures=mitigation,
            ecosystem_integrity={
                "current_baseline": 75,
                "projected_impact": overall,
                "harm_score": harm,
                "regeneration_score": regeneration,
            },
        )


class ReferenceConsentRequester:
    """Reviewer that confirms every action, flagging high-risk ones."""

    def request_confirmation(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> ConsentResponse:
        high_risk = (
            action.priority is Priority.CRITICAL
            or _affected_area(action) > HIGH_RISK_AREA_KM2
        )
        return ConsentResponse(
            status=ConsentStatus.CONFIRMED.value,
            response=ConsentDetail(
                summary="Human reviewer approved action after deliberation",
                rationale="Action aligns with biocentric values and has acceptable safeguards",
                confidence=0.85,
                concerns=(
                    ["High-risk action requires ongoing monitoring"] if high_risk else []
                ),
            ),
        )


class ReferenceVulnerabilityWindow:
    """Late-night window (02:00 to 04:59) for profiles that declare one."""

    def __init__(self, clock: Clock = utc_now, start_hour: int = 2, end_hour: int = 4):
        self._clock = clock
        self.start_hour = start_hour
        self.end_hour = end_hour

    @staticmethod
    def _declares_windows(user_profile: Mapping[str, Any]) -> bool:
        return bool(
            user_profile.get("vulnerability_windows")
            or user_profile.get("vulnerabilityWindows")
        )

    def is_vulnerable(self, user_profile: Mapping[str, Any], now: datetime) -> bool:
        if not self._declares_windows(user_profile):
            return False
        return self.start_hour <= now.hour <= self.end_hour

    def next_optimal_window(self, user_profile: Mapping[str, Any]) -> datetime:
        tomorrow = self._clock() + timedelta(days=1)
        return tomorrow.replace(hour=10, minute=0, second=0, microsecond=0)


def generation_risk(generation: int, years_per_generation: int) -> GenerationRisk:
    year_offset = generation * years_per_generation
    base = -5.0
    decay = math.log(year_offset + 1) * 2
    combined = base - decay
    if combined < -30:
        label = "high"
    elif combined < -15:
        label = "medium"
    else:
        label = "low"
    start = BASE_YEAR + (generation - 1) * years_per_generation
    return GenerationRisk(
        generation=generation,
        year_range=f"{start}-{start + years_per_generation}",
        ecological=base - decay,
        resource=base - decay * 0.8,
        climate=base - decay * 1.2,
        cultural=base - decay * 0.5,
        genetic=base - decay * 0.7,
        overall_risk=label,
    )


def equity_score(risks: list[GenerationRisk]) -> float:
    """100 minus twice the ecological+resource decline from first to last generation."""
    first = (risks[0].ecological + risks[0].resource) / 2
    last = (risks[-1].ecological + risks[-1].resource) / 2
    return 100 - max(0.0, (first - last) * 2)


class ReferenceProjector:
    def __init__(self, min_equity_score: float = -50.0) -> None:
        self.min_equity_score = min_equity_score

    def project(
        self,
        action: ProposedAction,
        generation_count: int,
        years_per_generation: int,
    ) -> ProjectionReport:
        risks = [
            generation_risk(generation, years_per_generation)
            for generation in range(1, generation_count + 1)
        ]
        equity = equity_score(risks)
        overall = sum((risk.ecological + risk.resource) / 2 for risk in risks) / len(
            risks
        )
        equity_met = equity >= self.min_equity_score

        if overall < -50:
            verdict = ProjectionVerdict.REJECTED
            rationale = "Severe negative impacts on future generations detected."
        elif not equity_met:
            verdict = ProjectionVerdict.CONDITIONAL
            rationale = "Intergenerational equity concerns require mitigation measures."
        elif overall < 0:
            verdict = ProjectionVerdict.CONDITIONAL
            rationale = "Minor negative impacts require monitoring and mitigation."
        else:
            verdict = ProjectionVerdict.APPROVED
            rationale = "Acceptable intergenerational impact profile."

        return ProjectionReport(
            verdict=verdict.value,
            rationale=rationale,
            overall_score=overall,
            equity_score=equity,
            per_generation_risk=risks,
            key_findings=[
                Finding(
                    category="intergenerational_equity",
                    finding=f"Equity score: {equity:.1f}",
                    severity="low" if equity_met else "high",
                )
            ],
            monitoring_requirements=[
                {
                    "metric": "ecosystem_health_index",
                    "frequency": "quarterly",
                    "duration": "operational_lifetime",
                }
            ],
        )
