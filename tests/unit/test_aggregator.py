from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from three_tier_consent.enums import (
    STAGE_ORDER,
    AuditEvent,
    OverallStatus,
    StageKey,
    StageStatus,
)
from three_tier_consent.models.outcome import StageOutcome
from three_tier_consent.models.result import AggregateResult, OverrideRecord
from three_tier_consent.pipeline import aggregator
from three_tier_consent.pipeline.aggregator import DECISION_TABLE, DecisionSignal

JUSTIFICATION = "Flood barrier repair must proceed before the storm surge arrives."
TERMINAL = [
    StageStatus.PASSED,
    StageStatus.FAILED,
    StageStatus.CONDITIONAL,
    StageStatus.SKIPPED,
]


def _outcome(key: StageKey, status: StageStatus) -> StageOutcome:
    outcome = StageOutcome(stage=key.number, stage_name=key.value)
    if status is StageStatus.PASSED:
        outcome.set_passed(f"{key.value} passed")
    elif status is StageStatus.FAILED:
        outcome.set_failed(f"{key.value} failed")
    elif status is StageStatus.CONDITIONAL:
        outcome.set_conditional(
            f"{key.value} conditional", [f"{key.value} fix a", f"{key.value} fix b"]
        )
    else:
        outcome.mark_skipped(f"{key.value} skipped")
    return outcome


def _result(statuses: list[StageStatus]) -> AggregateResult:
    result = AggregateResult(action_id="action-1", action_kind="test")
    for key, status in zip(STAGE_ORDER, statuses, strict=False):
        result.record_stage(key, _outcome(key, status))
    return result


def _override(result: AggregateResult) -> OverrideRecord:
    return OverrideRecord(
        result_id=result.result_id,
        action_id=result.action_id,
        justification=JUSTIFICATION,
        approvers=["alice", "bob"],
    )


def test_decision_table_declares_every_signal_once() -> None:
    signals = [rule.signal for rule in DECISION_TABLE]
    assert sorted(signals) == sorted(DecisionSignal)
    assert len(signals) == len(set(signals))
    assert signals[0] is DecisionSignal.OVERRIDE


@settings(database=None, max_examples=60)
@given(st.lists(st.sampled_from(TERMINAL), min_size=3, max_size=3))
def test_precedence_over_complete_results(statuses: list[StageStatus]) -> None:
    result = _result(statuses)
    status = aggregator.decide(result)
    if StageStatus.FAILED in statuses:
        assert status is OverallStatus.REJECTED
        assert len(result.blocking_issues) == statuses.count(StageStatus.FAILED)
    elif StageStatus.CONDITIONAL in statuses:
        assert status is OverallStatus.CONDITIONAL
        expected = [
            measure.measure
            for key, stage_status in zip(STAGE_ORDER, statuses, strict=True)
            if stage_status is StageStatus.CONDITIONAL
            for measure in result.outcome(key).required_mitigation
        ]
        assert [m.measure for m in result.required_actions] == expected
        assert result.required_actions
    else:
        assert status is OverallStatus.APPROVED
    assert result.decision_rationale


@settings(database=None, max_examples=40)
@given(st.lists(st.sampled_from(TERMINAL), min_size=0, max_size=3))
def test_override_wins_regardless_of_stages(statuses: list[StageStatus]) -> None:
    result = _result(statuses)
    result.emergency_override = _override(result)
    assert aggregator.decide(result) is OverallStatus.EMERGENCY_OVERRIDE
    assert JUSTIFICATION in result.decision_rationale


def test_partial_result_with_failure_is_rejected() -> None:
    result = _result([StageStatus.FAILED])
    assert aggregator.decide(result) is OverallStatus.REJECTED
    assert [issue.stage for issue in result.blocking_issues] == [1]
    assert result.blocking_issues[0].issue == "stage1_biocentric failed"


@pytest.mark.parametrize(
    "statuses",
    [[], [StageStatus.PASSED], [StageStatus.PASSED, StageStatus.CONDITIONAL]],
)
def test_incomplete_result_stays_pending(statuses: list[StageStatus]) -> None:
    result = _result(statuses)
    assert aggregator.decide(result) is OverallStatus.PENDING


def test_conditional_stage_waits_for_remaining_stages() -> None:
    partial = _result([StageStatus.PASSED, StageStatus.CONDITIONAL])
    assert aggregator.classify(partial).signal is DecisionSignal.INCOMPLETE
    assert aggregator.decide(partial) is OverallStatus.PENDING
    assert partial.decision_rationale.startswith("Validation incomplete")
    assert partial.blocking_issues == []

    complete = _result(
        [StageStatus.PASSED, StageStatus.CONDITIONAL, StageStatus.PASSED]
    )
    assert aggregator.decide(complete) is OverallStatus.CONDITIONAL


def test_skipped_stages_count_toward_approval() -> None:
    result = _result([StageStatus.PASSED, StageStatus.SKIPPED, StageStatus.PASSED])
    assert aggregator.decide(result) is OverallStatus.APPROVED


def test_decide_appends_exactly_one_trail_entry() -> None:
    result = _result([StageStatus.PASSED] * 3)
    before = len(result.audit_trail)
    aggregator.decide(result)
    assert len(result.audit_trail) == before + 1
    last = result.audit_trail[-1]
    assert last.event is AuditEvent.FINAL_DECISION
    assert last.status == OverallStatus.APPROVED.value


def test_override_event_name_is_used_when_requested() -> None:
    result = _result([StageStatus.FAILED, StageStatus.PASSED, StageStatus.PASSED])
    aggregator.decide(result)
    result.emergency_override = _override(result)
    aggregator.decide(result, AuditEvent.EMERGENCY_OVERRIDE)
    events = [entry.event for entry in result.audit_trail]
    assert events == [
        AuditEvent.STAGE_1_COMPLETED,
        AuditEvent.STAGE_2_COMPLETED,
        AuditEvent.STAGE_3_COMPLETED,
        AuditEvent.FINAL_DECISION,
        AuditEvent.EMERGENCY_OVERRIDE,
    ]
    # The rejected stage remains visible under the override.
    assert len(result.blocking_issues) == 1


def test_recomputing_does_not_accumulate_actions() -> None:
    result = _result(
        [StageStatus.CONDITIONAL, StageStatus.PASSED, StageStatus.CONDITIONAL]
    )
    aggregator.decide(result)
    aggregator.decide(result)
    assert len(result.required_actions) == 4


def test_stage_warnings_are_collected_in_order() -> None:
    result = AggregateResult(action_id="a")
    for key in STAGE_ORDER:
        outcome = _outcome(key, StageStatus.PASSED)
        outcome.warnings.append(f"warn {key.number}")
        result.record_stage(key, outcome)
    aggregator.decide(result)
    assert result.warnings == ["warn 1", "warn 2", "warn 3"]


def test_slot_cannot_be_filled_twice() -> None:
    result = _result([StageStatus.PASSED])
    with pytest.raises(RuntimeError, match="already filled"):
        result.record_stage(
            StageKey.BIOCENTRIC, _outcome(StageKey.BIOCENTRIC, StageStatus.PASSED)
        )
