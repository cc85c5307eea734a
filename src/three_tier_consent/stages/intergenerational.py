"""Stage 3: long-horizon consequence gate."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from three_tier_consent.collaborators.interfaces import (
    IntergenerationalProjector,
    ProjectionReport,
)
from three_tier_consent.config.settings import IntergenerationalSettings
from three_tier_consent.enums import ProjectionVerdict, StageKey
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.outcome import MitigationMeasure, StageOutcome
from three_tier_consent.stages.base import StageEvaluator
from three_tier_consent.utilities.awaitables import resolve
from three_tier_consent.utilities.clock import Clock, utc_now
from three_tier_consent.utilities.logger_manager import LoggerManager

PLACEHOLDER_MODIFICATION = "Address intergenerational concerns identified by the projection"


class IntergenerationalEvaluator(StageEvaluator[ProjectionReport]):
    """Combines the projector's verdict with the configured thresholds.

    The thresholds are necessary conditions on top of the verdict: they can
    stop an approved projection from passing, but never lift a conditional or
    rejected one.
    """

    stage_key = StageKey.INTERGENERATIONAL
    stage_name = "Intergenerational Consequence Audit"
    error_label = "Intergenerational audit"

    def __init__(
        self,
        settings: IntergenerationalSettings,
        projector: IntergenerationalProjector,
        logger_manager: LoggerManager,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(settings, logger_manager, clock)
        self.settings: IntergenerationalSettings = settings
        self.projector = projector

    async def _collect(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> ProjectionReport:
        raw = await resolve(
            self.projector.project(
                action,
                self.settings.generation_count,
                self.settings.years_per_generation,
            )
        )
        if isinstance(raw, ProjectionReport):
            return raw
        return ProjectionReport.model_validate(raw)

    def unmet_checks(self, report: ProjectionReport) -> list[str]:
        """Describe every threshold the report does not satisfy."""
        settings = self.settings
        unmet: list[str] = []
        if report.equity_score < settings.min_equity_score:
            unmet.append(
                f"Equity score {report.equity_score:.1f} below minimum "
                f"{settings.min_equity_score:.1f}"
            )
        if report.overall_score < settings.min_overall_score:
            unmet.append(
                f"Overall score {report.overall_score:.1f} below minimum "
                f"{settings.min_overall_score:.1f}"
            )
        for point in report.tipping_points:
            if point.probability > settings.max_tipping_point_probability:
                unmet.append(
                    f"Tipping point '{point.description}' probability "
                    f"{point.probability:.2f} exceeds {settings.max_tipping_point_probability:.2f}"
                )
        return unmet

    def _decide(
        self,
        outcome: StageOutcome,
        evidence: ProjectionReport,
        options: Mapping[str, Any],
    ) -> None:
        settings = self.settings
        equity_met = evidence.equity_score >= settings.min_equity_score
        score_met = evidence.overall_score >= settings.min_overall_score
        tipping_safe = all(
            point.probability <= settings.max_tipping_point_probability
            for point in evidence.tipping_points
        )
        unmet = self.unmet_checks(evidence)

        outcome.score = evidence.overall_score
        outcome.details = {
            "verdict": evidence.verdict,
            "equity_score": evidence.equity_score,
            "per_generation_risk": [
                risk.model_dump() for risk in evidence.per_generation_risk
            ],
            "tipping_points": [point.model_dump() for point in evidence.tipping_points],
            "equity_met": equity_met,
            "score_met": score_met,
            "tipping_safe": tipping_safe,
            "key_findings": [finding.model_dump() for finding in evidence.key_findings],
            "monitoring_requirements": list(evidence.monitoring_requirements),
        }

        verdict = evidence.verdict
        if verdict == ProjectionVerdict.APPROVED.value and not unmet:
            outcome.set_passed(
                "Intergenerational audit passed. Acceptable impact profile across "
                f"{settings.generation_count} generations."
            )
            outcome.explanation = (
                f"Overall score {evidence.overall_score:.1f}, equity score "
                f"{evidence.equity_score:.1f}."
            )
        elif verdict == ProjectionVerdict.CONDITIONAL.value:
            modifications: list[MitigationMeasure] = list(
                evidence.required_modifications
            ) or [MitigationMeasure(measure=PLACEHOLDER_MODIFICATION)]
            outcome.warnings.extend(unmet)
            outcome.set_conditional(
                evidence.rationale or "Intergenerational concerns require mitigation.",
                modifications,
            )
            concerns = sum(
                1 for finding in evidence.key_findings if finding.severity == "high"
            )
            outcome.explanation = (
                f"Conditional approval: {concerns} concern(s) require mitigation."
            )
        else:
            critical = list(evidence.critical_findings) + [
                finding.finding
                for finding in evidence.key_findings
                if finding.severity == "critical"
            ]
            parts = [evidence.rationale or "Intergenerational audit failed."]
            if critical:
                parts.append("Critical findings: " + "; ".join(critical) + ".")
            if verdict == ProjectionVerdict.APPROVED.value:
                parts.append("Pipeline checks not met: " + "; ".join(unmet) + ".")
            outcome.details["critical_findings"] = critical
            outcome.set_failed(" ".join(parts))
            outcome.explanation = (
                f"Intergenerational audit failed. {len(critical)} critical issue(s) detected."
            )
