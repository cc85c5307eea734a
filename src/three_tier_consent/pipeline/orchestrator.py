"""Sequential three-stage pipeline with audit persistence and resumption."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

from three_tier_consent.audit.alerts import LoggingAlertSink
from three_tier_consent.audit.sinks import InMemoryAuditSink, JsonlAuditSink
from three_tier_consent.collaborators.interfaces import (
    AlertSink,
    AuditSink,
    ConsentRequester,
    EcologicalScorer,
    IntergenerationalProjector,
    VulnerabilityWindow,
)
from three_tier_consent.config.settings import PipelineSettings
from three_tier_consent.enums import STAGE_ORDER, StageKey, StageStatus
from three_tier_consent.errors import ContinuationError, OrchestrationFault
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.audit import AuditEntry, AuditQuery
from three_tier_consent.models.result import (
    AggregateResult,
    ContinuationToken,
    OverrideRecord,
    OverrideRequest,
)
from three_tier_consent.pipeline import aggregator
from three_tier_consent.pipeline.override import EmergencyOverrideProtocol
from three_tier_consent.pipeline.state_machine import OrchestratorStateMachine
from three_tier_consent.stages.base import StageEvaluator
from three_tier_consent.stages.biocentric import BiocentricEvaluator
from three_tier_consent.stages.consent import ConsentEvaluator, Sleeper
from three_tier_consent.stages.intergenerational import IntergenerationalEvaluator
from three_tier_consent.utilities.awaitables import call_blocking
from three_tier_consent.utilities.clock import Clock, utc_now
from three_tier_consent.utilities.logger_manager import LoggerManager

ActionInput = ProposedAction | Mapping[str, Any]


def _as_action(action: ActionInput) -> ProposedAction:
    if isinstance(action, ProposedAction):
        return action
    return ProposedAction.from_mapping(action)


class ConsentPipeline:
    """Runs a proposed action through the three stages and decides on it.

    Stages run strictly in order. A deferred consent stage ends the run with a
    ``conditional`` result carrying a ``ContinuationToken``; the caller resumes
    later through ``resume``.
    """

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        *,
        ecological_scorer: EcologicalScorer,
        consent_requester: ConsentRequester,
        projector: IntergenerationalProjector,
        vulnerability_window: VulnerabilityWindow | None = None,
        audit_sink: AuditSink | None = None,
        alert_sink: AlertSink | None = None,
        logger_manager: LoggerManager | None = None,
        clock: Clock = utc_now,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.logger_manager = logger_manager or LoggerManager()
        self.logger = self.logger_manager.get_logger()
        self._clock = clock
        self.audit_sink: AuditSink = (
            audit_sink if audit_sink is not None else self._default_audit_sink()
        )
        self.alert_sink: AlertSink = (
            alert_sink if alert_sink is not None else LoggingAlertSink(self.logger_manager)
        )
        self._stages: tuple[tuple[StageKey, StageEvaluator[Any]], ...] = (
            (
                StageKey.BIOCENTRIC,
                BiocentricEvaluator(
                    self.settings.biocentric,
                    ecological_scorer,
                    self.logger_manager,
                    clock,
                ),
            ),
            (
                StageKey.CONSENT,
                ConsentEvaluator(
                    self.settings.consent,
                    consent_requester,
                    self.logger_manager,
                    vulnerability_window=vulnerability_window,
                    clock=clock,
                    sleep=sleep,
                ),
            ),
            (
                StageKey.INTERGENERATIONAL,
                IntergenerationalEvaluator(
                    self.settings.intergenerational,
                    projector,
                    self.logger_manager,
                    clock,
                ),
            ),
        )
        self.override_protocol = EmergencyOverrideProtocol(
            self.settings.override,
            self.settings.audit,
            self.logger_manager,
            audit_sink=self.audit_sink,
            alert_sink=self.alert_sink,
            clock=clock,
        )

    def _default_audit_sink(self) -> AuditSink:
        if self.settings.audit.path is not None:
            return JsonlAuditSink(self.settings.audit.path)
        return InMemoryAuditSink()

    async def validate(
        self,
        action: ActionInput,
        options: Mapping[str, Any] | None = None,
        *,
        resumed_from: str | None = None,
    ) -> AggregateResult:
        """Run all stages for ``action`` and persist the decided result.

        Raises ``ActionValidationError`` before any stage runs when the action
        is malformed, and ``OrchestrationFault`` for any unexpected failure.
        """
        proposed = _as_action(action)
        proposed.validate_required()
        opts: Mapping[str, Any] = options or {}
        result = AggregateResult(
            action_id=proposed.id,
            action_kind=proposed.kind,
            timestamp=self._clock(),
            resumed_from=resumed_from,
        )
        machine = OrchestratorStateMachine()

        with self.logger_manager.context(
            action_id=proposed.id, result_id=result.result_id
        ):
            self.logger.info(f"Starting three-tier validation for {proposed.kind}")
            try:
                await self._run_stages(proposed, opts, result, machine)
                machine.decide()
                status = aggregator.decide(result)
                result.continuation = self._continuation_for(result)
                await self._persist(result)
            except Exception as exc:
                self.logger.error(
                    f"Orchestration fault in state {machine.state.value}: {exc}",
                    exc_info=True,
                )
                raise OrchestrationFault(
                    f"Pipeline run failed in state {machine.state.value}: {exc}",
                    result_id=result.result_id,
                    state=machine.state,
                ) from exc

            self.logger.info(
                f"Decision: {status.value}",
                extra={"context": {"rationale": result.decision_rationale}},
            )
            self.logger_manager.log_metric(f"decision.{status.value}")
        return result

    async def _run_stages(
        self,
        action: ProposedAction,
        options: Mapping[str, Any],
        result: AggregateResult,
        machine: OrchestratorStateMachine,
    ) -> None:
        last = STAGE_ORDER[-1]
        for key, evaluator in self._stages:
            machine.start_stage(key)
            outcome = await evaluator.evaluate(action, self._stage_options(key, options))
            result.record_stage(key, outcome)
            machine.finish_stage(key)
            if (
                self.settings.halt_on_first_failure
                and outcome.status is StageStatus.FAILED
                and key is not last
            ):
                self.logger.info(f"Halting after failed stage {key.number}")
                return

    @staticmethod
    def _stage_options(key: StageKey, options: Mapping[str, Any]) -> dict[str, Any]:
        stage_options = dict(options.get(f"stage{key.number}") or {})
        if key is StageKey.CONSENT and "user_profile" in options:
            stage_options.setdefault("user_profile", options["user_profile"])
        return stage_options

    def _continuation_for(self, result: AggregateResult) -> ContinuationToken | None:
        outcome = result.outcome(StageKey.CONSENT)
        if outcome is None or outcome.status is not StageStatus.CONDITIONAL:
            return None
        reason = outcome.details.get("deferral")
        if not reason:
            return None
        retry_at = next(
            (m.retry_at for m in outcome.required_mitigation if m.retry_at), None
        )
        return ContinuationToken.issue(
            action_id=result.action_id,
            result_id=result.result_id,
            retry_at=retry_at or self._clock(),
            reason=str(reason),
            issued_at=self._clock(),
        )

    async def _persist(self, result: AggregateResult) -> None:
        if not self.settings.audit.enabled:
            return
        entry = AuditEntry.from_result(
            result,
            retention_days=self.settings.audit.retention_days,
            recorded_at=self._clock(),
        )
        await call_blocking(self.audit_sink.append, entry)

    async def override(
        self, result: AggregateResult, request: OverrideRequest
    ) -> OverrideRecord:
        """Apply an emergency override; refused requests leave ``result`` as is."""
        return await self.override_protocol.request(result, request)

    async def query_audit(
        self, filters: AuditQuery | Mapping[str, Any] | None = None
    ) -> list[AuditEntry]:
        query = (
            filters
            if isinstance(filters, AuditQuery)
            else AuditQuery.from_mapping(dict(filters or {}))
        )
        return list(await call_blocking(self.audit_sink.query, query))

    async def resume(
        self,
        token: ContinuationToken,
        action: ActionInput,
        options: Mapping[str, Any] | None = None,
    ) -> AggregateResult:
        """Re-run a deferred action once its retry time has come."""
        proposed = _as_action(action)
        if token.action_id != proposed.id:
            raise ContinuationError(
                f"Continuation token belongs to action {token.action_id}, "
                f"not {proposed.id}"
            )
        if not token.verify():
            raise ContinuationError("Continuation token failed verification")
        now = self._clock()
        if now < token.retry_at:
            raise ContinuationError(
                f"Resumption not allowed before {token.retry_at.isoformat()}"
            )
        self.logger.info(
            f"Resuming action {proposed.id} deferred by {token.result_id}"
        )
        return await self.validate(proposed, options, resumed_from=token.result_id)

    async def validate_many(
        self,
        actions: Iterable[ActionInput],
        options: Mapping[str, Any] | None = None,
    ) -> list[AggregateResult]:
        """Validate independent actions concurrently, preserving input order.

        Every action is checked before any is scheduled, so a malformed entry
        refuses the whole batch without recording anything. Once scheduled, all
        validations run to completion before the first failure is re-raised.
        """
        pending: list[ProposedAction] = [_as_action(action) for action in actions]
        for proposed in pending:
            proposed.validate_required()

        semaphore = asyncio.Semaphore(self.settings.concurrency_limit)

        async def _bounded(proposed: ProposedAction) -> AggregateResult:
            async with semaphore:
                return await self.validate(proposed, options)

        outcomes = await asyncio.gather(
            *(_bounded(proposed) for proposed in pending), return_exceptions=True
        )
        results: list[AggregateResult] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        return results
