from __future__ import annotations

from datetime import timedelta

import pytest
from tests.stubs.collaborators import BASE_TIME, FrozenClock
from tests.utils.pipeline_helpers import fast_settings, make_action

from three_tier_consent.audit.sinks import InMemoryAuditSink
from three_tier_consent.collaborators.reference import (
    ReferenceConsentRequester,
    ReferenceEcologicalScorer,
    ReferenceProjector,
    ReferenceVulnerabilityWindow,
    dimension_scores,
    equity_score,
    generation_risk,
)
from three_tier_consent.enums import OverallStatus, Priority, StageKey, StageStatus
from three_tier_consent.pipeline.orchestrator import ConsentPipeline
from three_tier_consent.utilities.logger_manager import LoggerManager


def test_regenerative_action_has_no_net_harm() -> None:
    action = make_action(scope={}, resource_flows={}, context={"regenerative_measures": True})
    assessment = ReferenceEcologicalScorer().assess(action, {})
    assert assessment.net_harm < 0
    assert assessment.mitigation_measures == []
    assert assessment.confidence == 0.8


def test_large_footprint_offers_habitat_mitigation() -> None:
    action = make_action(scope={"geographic": {"area_affected_km2": 20}})
    assert dimension_scores(action)["biodiversity"] == -40
    assessment = ReferenceEcologicalScorer().assess(action, {})
    assert assessment.net_harm > 0
    assert [m.measure for m in assessment.mitigation_measures] == [
        "Habitat restoration or protection offset"
    ]


def test_reviewer_flags_high_risk_actions() -> None:
    requester = ReferenceConsentRequester()
    calm = requester.request_confirmation(make_action(), {})
    urgent = requester.request_confirmation(make_action(priority=Priority.CRITICAL), {})
    assert calm.status == "confirmed"
    assert calm.response.concerns == []
    assert urgent.response.concerns == ["High-risk action requires ongoing monitoring"]


def test_vulnerability_window_needs_declared_windows() -> None:
    clock = FrozenClock(BASE_TIME.replace(hour=3))
    window = ReferenceVulnerabilityWindow(clock)
    assert window.is_vulnerable({"vulnerability_windows": ["night"]}, clock())
    assert not window.is_vulnerable({}, clock())
    assert not window.is_vulnerable({"vulnerability_windows": ["night"]}, BASE_TIME)
    assert window.next_optimal_window({}) == (
        BASE_TIME.replace(hour=10) + timedelta(days=1)
    )


def test_projection_covers_every_generation() -> None:
    report = ReferenceProjector().project(make_action(), 7, 25)
    assert [risk.generation for risk in report.per_generation_risk] == list(range(1, 8))
    assert report.per_generation_risk[0].year_range == "2025-2050"
    assert report.equity_score == pytest.approx(equity_score(report.per_generation_risk))
    assert report.verdict == "conditional"


def test_risk_grows_with_horizon() -> None:
    near = generation_risk(1, 25)
    far = generation_risk(7, 25)
    assert far.ecological < near.ecological
    assert near.overall_risk == "low"


def test_strict_equity_minimum_makes_projection_conditional() -> None:
    report = ReferenceProjector(min_equity_score=99.0).project(make_action(), 7, 25)
    assert report.verdict == "conditional"
    assert report.key_findings[0].severity == "high"


@pytest.mark.asyncio
async def test_pipeline_runs_on_reference_collaborators(
    logger_manager: LoggerManager,
) -> None:
    pipeline = ConsentPipeline(
        fast_settings(),
        ecological_scorer=ReferenceEcologicalScorer(),
        consent_requester=ReferenceConsentRequester(),
        projector=ReferenceProjector(),
        vulnerability_window=ReferenceVulnerabilityWindow(FrozenClock()),
        audit_sink=InMemoryAuditSink(),
        logger_manager=logger_manager,
        clock=FrozenClock(),
    )
    result = await pipeline.validate(
        make_action(scope={}, resource_flows={}, context={"regenerative_measures": True})
    )
    assert result.outcome(StageKey.BIOCENTRIC).status is StageStatus.PASSED
    assert result.outcome(StageKey.CONSENT).status is StageStatus.PASSED
    assert result.outcome(StageKey.INTERGENERATIONAL).status is StageStatus.CONDITIONAL
    assert result.overall_status is OverallStatus.CONDITIONAL
