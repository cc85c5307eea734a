"""Decision aggregation over the stage slots of an aggregate result."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from three_tier_consent.enums import AuditEvent, OverallStatus, StageStatus
from three_tier_consent.models.outcome import MitigationMeasure
from three_tier_consent.models.result import AggregateResult, BlockingIssue


class DecisionSignal(str, Enum):
    OVERRIDE = "override"
    FAILED = "failed"
    INCOMPLETE = "incomplete"
    CONDITIONAL = "conditional"
    ALL_PASSED = "all_passed"


def _has_override(result: AggregateResult) -> bool:
    override = result.emergency_override
    return override is not None and override.approved


def _has_status(status: StageStatus) -> Callable[[AggregateResult], bool]:
    def predicate(result: AggregateResult) -> bool:
        return any(
            outcome.status is status for _, outcome in result.recorded_outcomes()
        )

    return predicate


def _is_incomplete(result: AggregateResult) -> bool:
    return not result.is_complete


def _all_passed(result: AggregateResult) -> bool:
    return result.is_complete and all(
        outcome.status in (StageStatus.PASSED, StageStatus.SKIPPED)
        for _, outcome in result.recorded_outcomes()
    )


def _override_rationale(result: AggregateResult) -> str:
    override = result.emergency_override
    justification = override.justification if override else ""
    return f"Emergency override approved: {justification}"


@dataclass(frozen=True)
class DecisionRule:
    signal: DecisionSignal
    status: OverallStatus
    applies: Callable[[AggregateResult], bool]
    rationale: Callable[[AggregateResult], str]


# First matching rule wins.
DECISION_TABLE: tuple[DecisionRule, ...] = (
    DecisionRule(
        DecisionSignal.OVERRIDE,
        OverallStatus.EMERGENCY_OVERRIDE,
        _has_override,
        _override_rationale,
    ),
    DecisionRule(
        DecisionSignal.FAILED,
        OverallStatus.REJECTED,
        _has_status(StageStatus.FAILED),
        lambda _: (
            "Action rejected: one or more validation stages failed. "
            "All three stages must pass for approval."
        ),
    ),
    DecisionRule(
        DecisionSignal.INCOMPLETE,
        OverallStatus.PENDING,
        _is_incomplete,
        lambda _: "Validation incomplete: not all stages have been evaluated.",
    ),
    DecisionRule(
        DecisionSignal.CONDITIONAL,
        OverallStatus.CONDITIONAL,
        _has_status(StageStatus.CONDITIONAL),
        lambda _: (
            "Conditional approval: required mitigation measures must be implemented."
        ),
    ),
    DecisionRule(
        DecisionSignal.ALL_PASSED,
        OverallStatus.APPROVED,
        _all_passed,
        lambda _: "All three validation stages passed successfully.",
    ),
)

if {rule.signal for rule in DECISION_TABLE} != set(DecisionSignal):
    raise RuntimeError("Decision table must declare every decision signal")

_RULES_BY_SIGNAL = {rule.signal: rule for rule in DECISION_TABLE}


def classify(result: AggregateResult) -> DecisionRule:
    """Return the first rule in precedence order that applies to ``result``."""
    for rule in DECISION_TABLE:
        if rule.applies(result):
            return rule
    # Only reachable when a filled slot still holds a pending outcome.
    return _RULES_BY_SIGNAL[DecisionSignal.INCOMPLETE]


def blocking_issues(result: AggregateResult) -> list[BlockingIssue]:
    return [
        BlockingIssue(
            stage=outcome.stage,
            stage_name=outcome.stage_name,
            issue=outcome.rationale,
            details=dict(outcome.details),
        )
        for _, outcome in result.recorded_outcomes()
        if outcome.status is StageStatus.FAILED
    ]


def required_actions(result: AggregateResult) -> list[MitigationMeasure]:
    return [
        measure
        for _, outcome in result.recorded_outcomes()
        if outcome.status is StageStatus.CONDITIONAL
        for measure in outcome.required_mitigation
    ]


def decide(
    result: AggregateResult, event: AuditEvent = AuditEvent.FINAL_DECISION
) -> OverallStatus:
    """Recompute the decision fields of ``result`` and log one trail entry."""
    rule = classify(result)
    result.blocking_issues = blocking_issues(result)
    result.required_actions = required_actions(result)
    result.warnings = [
        warning
        for _, outcome in result.recorded_outcomes()
        for warning in outcome.warnings
    ]
    result.overall_status = rule.status
    result.decision_rationale = rule.rationale(result)
    details: dict[str, object] = {"signal": rule.signal.value}
    if rule.signal is DecisionSignal.OVERRIDE and result.emergency_override:
        details["approvers"] = list(result.emergency_override.approvers)
        details["circumstances"] = result.emergency_override.circumstances
    result.append_audit(
        event, rule.status.value, result.decision_rationale, details
    )
    return rule.status
