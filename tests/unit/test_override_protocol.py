from __future__ import annotations

import pytest
from tests.stubs.collaborators import FailingAuditSink, StubScorer
from tests.utils.pipeline_helpers import (
    VALID_JUSTIFICATION,
    fast_settings,
    make_action,
    make_pipeline,
)

from three_tier_consent.audit.alerts import InMemoryAlertSink
from three_tier_consent.audit.sinks import InMemoryAuditSink
from three_tier_consent.enums import (
    AlertSeverity,
    AuditEvent,
    OverallStatus,
    RetentionClass,
)
from three_tier_consent.errors import OrchestrationFault, OverrideValidationError
from three_tier_consent.models.result import OverrideRecord, OverrideRequest
from three_tier_consent.utilities.logger_manager import LoggerManager


async def _rejected(pipeline):
    result = await pipeline.validate(make_action())
    assert result.overall_status is OverallStatus.REJECTED
    return result


@pytest.mark.asyncio
async def test_short_justification_leaves_result_untouched(
    logger_manager: LoggerManager,
) -> None:
    pipeline = make_pipeline(logger_manager, scorer=StubScorer(confidence=0.5))
    result = await _rejected(pipeline)
    before = result.model_dump()
    request = OverrideRequest(justification="x" * 40, approvers=["alice", "bob"])
    with pytest.raises(OverrideValidationError, match="at least 50 characters"):
        await pipeline.override(result, request)
    assert result.model_dump() == before
    assert result.overall_status is OverallStatus.REJECTED


@pytest.mark.asyncio
@pytest.mark.parametrize("approvers", [[], ["alice"], ["alice", "alice", " alice "]])
async def test_too_few_distinct_approvers_is_refused(
    logger_manager: LoggerManager, approvers: list[str]
) -> None:
    pipeline = make_pipeline(logger_manager, scorer=StubScorer(confidence=0.5))
    result = await _rejected(pipeline)
    request = OverrideRequest(justification=VALID_JUSTIFICATION, approvers=approvers)
    with pytest.raises(OverrideValidationError, match="at least 2 approvers"):
        await pipeline.override(result, request)
    assert result.emergency_override is None


@pytest.mark.asyncio
async def test_disabled_overrides_are_refused(logger_manager: LoggerManager) -> None:
    pipeline = make_pipeline(
        logger_manager,
        settings=fast_settings(override={"allow_override": False}),
        scorer=StubScorer(confidence=0.5),
    )
    result = await _rejected(pipeline)
    request = OverrideRequest(
        justification=VALID_JUSTIFICATION, approvers=["alice", "bob"]
    )
    with pytest.raises(OverrideValidationError, match="disabled"):
        await pipeline.override(result, request)


@pytest.mark.asyncio
async def test_approved_override_forces_emergency_status(
    logger_manager: LoggerManager,
) -> None:
    audit = InMemoryAuditSink()
    alerts = InMemoryAlertSink()
    pipeline = make_pipeline(
        logger_manager,
        scorer=StubScorer(confidence=0.5),
        audit_sink=audit,
        alert_sink=alerts,
    )
    result = await _rejected(pipeline)
    record = await pipeline.override(
        result,
        OverrideRequest(
            justification=VALID_JUSTIFICATION,
            approvers=["alice", "bob", "alice"],
            circumstances="wildfire",
        ),
    )

    assert record.approvers == ["alice", "bob"]
    assert record.circumstances == "wildfire"
    assert result.emergency_override == record
    assert result.overall_status is OverallStatus.EMERGENCY_OVERRIDE
    assert VALID_JUSTIFICATION in result.decision_rationale
    assert [entry.event for entry in result.audit_trail][-2:] == [
        AuditEvent.FINAL_DECISION,
        AuditEvent.EMERGENCY_OVERRIDE,
    ]

    assert len(alerts.alerts) == 1
    assert alerts.alerts[0].severity is AlertSeverity.CRITICAL
    assert alerts.alerts[0].result_id == result.result_id

    entries = audit.query()
    assert [entry.retention_class for entry in entries] == [
        RetentionClass.STANDARD,
        RetentionClass.EXTENDED,
    ]
    assert entries[1].retention_days == 10 * 365
    assert entries[1].overall_status is OverallStatus.EMERGENCY_OVERRIDE
    assert logger_manager.get_metrics()["override.approved"]["value"] == 1


@pytest.mark.asyncio
async def test_persisted_entry_is_not_changed_by_later_override(
    logger_manager: LoggerManager,
) -> None:
    audit = InMemoryAuditSink()
    pipeline = make_pipeline(
        logger_manager, scorer=StubScorer(confidence=0.5), audit_sink=audit
    )
    result = await _rejected(pipeline)
    await pipeline.override(
        result,
        OverrideRequest(justification=VALID_JUSTIFICATION, approvers=["a", "b"]),
    )
    original = audit.query()[0]
    assert original.overall_status is OverallStatus.REJECTED
    assert original.emergency_override is None
    assert len(original.audit_trail) == 4


@pytest.mark.asyncio
async def test_second_override_is_refused(logger_manager: LoggerManager) -> None:
    pipeline = make_pipeline(logger_manager, scorer=StubScorer(confidence=0.5))
    result = await _rejected(pipeline)
    request = OverrideRequest(justification=VALID_JUSTIFICATION, approvers=["a", "b"])
    await pipeline.override(result, request)
    with pytest.raises(OverrideValidationError, match="already carries"):
        await pipeline.override(result, request)


@pytest.mark.asyncio
async def test_override_audit_failure_leaves_result_untouched(
    logger_manager: LoggerManager,
) -> None:
    alerts = InMemoryAlertSink()
    pipeline = make_pipeline(
        logger_manager, scorer=StubScorer(confidence=0.5), alert_sink=alerts
    )
    result = await _rejected(pipeline)
    before = result.model_dump()
    request = OverrideRequest(justification=VALID_JUSTIFICATION, approvers=["a", "b"])

    pipeline.override_protocol.audit_sink = FailingAuditSink()
    with pytest.raises(OrchestrationFault) as excinfo:
        await pipeline.override(result, request)
    assert excinfo.value.result_id == result.result_id
    assert isinstance(excinfo.value.__cause__, OSError)
    assert result.model_dump() == before
    assert result.emergency_override is None
    assert alerts.alerts == []
    assert "override.approved" not in logger_manager.get_metrics()

    audit = InMemoryAuditSink()
    pipeline.override_protocol.audit_sink = audit
    record = await pipeline.override(result, request)
    assert result.emergency_override == record
    assert result.overall_status is OverallStatus.EMERGENCY_OVERRIDE
    assert [entry.event for entry in result.audit_trail].count(
        AuditEvent.EMERGENCY_OVERRIDE
    ) == 1
    assert [entry.retention_class for entry in audit.query()] == [
        RetentionClass.EXTENDED
    ]
    assert len(alerts.alerts) == 1


class _BrokenAlertSink:
    def notify(self, alert) -> None:
        raise ConnectionError("pager offline")


@pytest.mark.asyncio
async def test_override_alert_failure_keeps_the_recorded_override(
    logger_manager: LoggerManager,
) -> None:
    audit = InMemoryAuditSink()
    pipeline = make_pipeline(
        logger_manager,
        scorer=StubScorer(confidence=0.5),
        audit_sink=audit,
        alert_sink=_BrokenAlertSink(),
    )
    result = await _rejected(pipeline)
    with pytest.raises(OrchestrationFault, match="alert delivery failed"):
        await pipeline.override(
            result,
            OverrideRequest(justification=VALID_JUSTIFICATION, approvers=["a", "b"]),
        )
    assert result.overall_status is OverallStatus.EMERGENCY_OVERRIDE
    assert audit.query()[-1].retention_class is RetentionClass.EXTENDED


def test_override_record_enforces_its_own_gates() -> None:
    with pytest.raises(ValueError, match="50 characters"):
        OverrideRecord(
            result_id="r", action_id="a", justification="too short", approvers=["a", "b"]
        )
    with pytest.raises(ValueError, match="2 approvers"):
        OverrideRecord(
            result_id="r",
            action_id="a",
            justification=VALID_JUSTIFICATION,
            approvers=["a", "a"],
        )
    record = OverrideRecord(
        result_id="r", action_id="a", justification=VALID_JUSTIFICATION, approvers=["a", "b"]
    )
    assert record.approved is True
    assert record.audit_retention_years == 10
    assert record.circumstances == "unspecified"
