"""Stage 1: ecological impact gate."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from three_tier_consent.collaborators.interfaces import (
    EcologicalAssessment,
    EcologicalScorer,
)
from three_tier_consent.config.settings import BiocentricSettings
from three_tier_consent.enums import StageKey
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.outcome import StageOutcome
from three_tier_consent.stages.base import StageEvaluator
from three_tier_consent.utilities.awaitables import resolve
from three_tier_consent.utilities.clock import Clock, utc_now
from three_tier_consent.utilities.logger_manager import LoggerManager


class BiocentricEvaluator(StageEvaluator[EcologicalAssessment]):
    stage_key = StageKey.BIOCENTRIC
    stage_name = "Biocentric Impact Assessment"
    error_label = "Biocentric assessment"

    def __init__(
        self,
        settings: BiocentricSettings,
        scorer: EcologicalScorer,
        logger_manager: LoggerManager,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(settings, logger_manager, clock)
        self.settings: BiocentricSettings = settings
        self.scorer = scorer

    async def _collect(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> EcologicalAssessment:
        raw = await resolve(self.scorer.assess(action, options))
        if isinstance(raw, EcologicalAssessment):
            return raw
        return EcologicalAssessment.model_validate(raw)

    def _decide(
        self,
        outcome: StageOutcome,
        evidence: EcologicalAssessment,
        options: Mapping[str, Any],
    ) -> None:
        outcome.score = evidence.overall_score
        outcome.confidence = evidence.confidence
        outcome.details = {
            "dimension_scores": dict(evidence.dimension_scores),
            "net_harm": evidence.net_harm,
            "ecosystem_integrity": dict(evidence.ecosystem_integrity),
        }
        threshold = self.settings.zero_net_harm_threshold
        confidence_pct = f"{evidence.confidence * 100:.0f}%"
        required_pct = f"{self.settings.min_confidence * 100:.0f}%"
        net_harm = f"{evidence.net_harm:.2f}"

        if evidence.confidence < self.settings.min_confidence:
            outcome.set_failed(
                f"Assessment confidence too low (insufficient confidence): "
                f"{confidence_pct} (required: {required_pct})"
            )
            outcome.explanation = (
                f"Cannot proceed with confidence level of {confidence_pct}. "
                f"Additional data or modeling required to reach {required_pct}."
            )
        elif evidence.net_harm <= threshold:
            outcome.set_passed(
                "Biocentric impact assessment passed. Zero net harm constraint satisfied."
            )
            outcome.explanation = (
                f"Overall score {evidence.overall_score:.1f}, net harm {net_harm} "
                f"(threshold: <= {threshold}), confidence {confidence_pct}."
            )
        elif evidence.mitigation_measures:
            outcome.set_conditional(
                "Biocentric impact concerns require mitigation measures.",
                list(evidence.mitigation_measures),
            )
            outcome.explanation = (
                f"{len(evidence.mitigation_measures)} mitigation measure(s) required. "
                f"Net harm {net_harm} must be brought to <= {threshold}."
            )
        else:
            outcome.set_failed(
                f"Zero net harm constraint violated. Net harm: {net_harm} "
                f"(threshold: <= {threshold})"
            )
            outcome.explanation = (
                f"Net harm of {net_harm} exceeds the acceptable threshold and no "
                "mitigation was offered."
            )
