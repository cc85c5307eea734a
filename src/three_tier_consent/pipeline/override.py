"""Emergency override escalation for decided results."""

from __future__ import annotations

from pydantic import ValidationError

from three_tier_consent.collaborators.interfaces import (
    AlertSink,
    AuditSink,
    OperationalAlert,
)
from three_tier_consent.config.settings import AuditSettings, OverrideSettings
from three_tier_consent.constants import DAYS_PER_YEAR, OVERRIDE_MARKER
from three_tier_consent.enums import AlertSeverity, AuditEvent, RetentionClass
from three_tier_consent.errors import OrchestrationFault, OverrideValidationError
from three_tier_consent.models.audit import AuditEntry
from three_tier_consent.models.result import (
    AggregateResult,
    OverrideRecord,
    OverrideRequest,
)
from three_tier_consent.pipeline import aggregator
from three_tier_consent.utilities.awaitables import call_blocking
from three_tier_consent.utilities.clock import Clock, utc_now
from three_tier_consent.utilities.logger_manager import LoggerManager


# Fields the aggregator writes when it decides a result.
_DECISION_FIELDS = (
    "emergency_override",
    "overall_status",
    "decision_rationale",
    "blocking_issues",
    "required_actions",
    "warnings",
    "audit_trail",
)


def _distinct(approvers: list[str]) -> list[str]:
    seen: list[str] = []
    for approver in approvers:
        name = approver.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


class EmergencyOverrideProtocol:
    """Validates override requests and applies approved ones.

    Every gate is checked before the result is touched, so a refused request
    leaves the result exactly as it was.
    """

    def __init__(
        self,
        settings: OverrideSettings,
        audit_settings: AuditSettings,
        logger_manager: LoggerManager,
        audit_sink: AuditSink | None = None,
        alert_sink: AlertSink | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings
        self.audit_settings = audit_settings
        self.logger_manager = logger_manager
        self.logger = logger_manager.get_logger()
        self.audit_sink = audit_sink
        self.alert_sink = alert_sink
        self._clock = clock

    def build_record(
        self, result: AggregateResult, request: OverrideRequest
    ) -> OverrideRecord:
        """Check every gate and return the record; ``result`` is not modified."""
        settings = self.settings
        if not settings.allow_override:
            raise OverrideValidationError(
                "Emergency overrides are disabled in current configuration"
            )
        if result.emergency_override is not None:
            raise OverrideValidationError(
                f"Result {result.result_id} already carries an emergency override"
            )
        justification = (request.justification or "").strip()
        if len(justification) < settings.min_justification_length:
            raise OverrideValidationError(
                "Override justification must be at least "
                f"{settings.min_justification_length} characters"
            )
        approvers = _distinct(request.approvers)
        if len(approvers) < settings.min_approvers:
            raise OverrideValidationError(
                f"Override requires at least {settings.min_approvers} approvers"
            )
        try:
            return OverrideRecord(
                timestamp=self._clock(),
                result_id=result.result_id,
                action_id=result.action_id,
                justification=justification,
                approvers=approvers,
                required_approvers=settings.min_approvers,
                min_justification_length=settings.min_justification_length,
                circumstances=request.circumstances or "unspecified",
                audit_retention_years=settings.audit_retention_years,
            )
        except ValidationError as exc:
            raise OverrideValidationError(str(exc)) from exc

    async def request(
        self,
        result: AggregateResult,
        request: OverrideRequest,
        action_kind: str | None = None,
    ) -> OverrideRecord:
        """Record an approved override, then apply it to ``result``.

        The override is decided on a copy and persisted before the live result
        changes or any alert goes out. When persistence fails the result is
        left untouched, so the request can be retried.
        """
        record = self.build_record(result, request)

        staged = result.model_copy(deep=True)
        staged.emergency_override = record
        aggregator.decide(staged, AuditEvent.EMERGENCY_OVERRIDE)

        if self.audit_settings.enabled and self.audit_sink is not None:
            entry = AuditEntry.from_result(
                staged,
                retention_days=record.audit_retention_years * DAYS_PER_YEAR,
                retention_class=RetentionClass.EXTENDED,
                action_kind=action_kind,
                recorded_at=self._clock(),
            )
            try:
                await call_blocking(self.audit_sink.append, entry)
            except Exception as exc:
                self.logger.error(
                    f"Failed to record emergency override for {result.result_id}",
                    exc_info=True,
                )
                raise OrchestrationFault(
                    f"Emergency override could not be recorded: {exc}",
                    result_id=result.result_id,
                ) from exc

        for name in _DECISION_FIELDS:
            setattr(result, name, getattr(staged, name))

        self.logger.warning(
            f"{OVERRIDE_MARKER} emergency override activated for {result.result_id}",
            extra={
                "context": {
                    "result_id": result.result_id,
                    "action_id": result.action_id,
                    "approvers": ",".join(record.approvers),
                    "retention_years": record.audit_retention_years,
                }
            },
        )
        self.logger_manager.log_metric("override.approved")

        if self.alert_sink is not None:
            try:
                await call_blocking(
                    self.alert_sink.notify, self._alert_for(result, record)
                )
            except Exception as exc:
                self.logger.error(
                    f"Override for {result.result_id} was recorded but the alert failed",
                    exc_info=True,
                )
                raise OrchestrationFault(
                    f"Emergency override recorded but alert delivery failed: {exc}",
                    result_id=result.result_id,
                ) from exc
        return record

    @staticmethod
    def _alert_for(result: AggregateResult, record: OverrideRecord) -> OperationalAlert:
        return OperationalAlert(
            timestamp=record.timestamp,
            severity=AlertSeverity.CRITICAL,
            title="EMERGENCY OVERRIDE ACTIVATED",
            message=(
                f"Result {result.result_id} for action {result.action_id} was "
                f"overridden: {record.justification}"
            ),
            result_id=result.result_id,
            action_id=result.action_id,
            details={
                "approvers": list(record.approvers),
                "circumstances": record.circumstances,
                "audit_retention_years": record.audit_retention_years,
                "marker": OVERRIDE_MARKER,
            },
        )
