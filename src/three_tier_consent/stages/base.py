"""Base class shared by the three stage evaluators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Generic, final

from typing_extensions import TypeVar

from three_tier_consent.config.settings import StageSettings
from three_tier_consent.enums import StageKey, StageStatus
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.outcome import StageOutcome
from three_tier_consent.utilities.clock import Clock, utc_now
from three_tier_consent.utilities.logger_manager import LoggerManager

EvidenceT = TypeVar("EvidenceT")


class StageEvaluator(Generic[EvidenceT], ABC):
    """Turns collaborator evidence into a normalized ``StageOutcome``.

    Subclasses split their work in two: ``_collect`` talks to collaborators
    and may fail for any reason, which the base class turns into a ``failed``
    outcome; ``_decide`` applies the stage rules to the collected evidence and
    is expected not to fail, so its exceptions reach the orchestrator.
    """

    stage_key: ClassVar[StageKey]
    stage_name: ClassVar[str]
    error_label: ClassVar[str]

    def __init__(
        self,
        settings: StageSettings,
        logger_manager: LoggerManager,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings
        self.logger_manager = logger_manager
        self.logger = logger_manager.get_logger()
        self._clock = clock

    @final
    async def evaluate(
        self, action: ProposedAction, options: Mapping[str, Any] | None = None
    ) -> StageOutcome:
        """Run the stage and return a resolved outcome."""
        opts: Mapping[str, Any] = options or {}
        outcome = StageOutcome(
            stage=self.stage_key.number,
            stage_name=self.stage_name,
            timestamp=self._clock(),
        )
        if not self.settings.enabled:
            outcome.mark_skipped(f"{self.stage_name} skipped.")
            outcome.explanation = f"{self.stage_name} is disabled by configuration."
        else:
            try:
                evidence = await self._collect(action, opts)
            except Exception as exc:
                self._fail_from_error(outcome, exc)
            else:
                self._decide(outcome, evidence, opts)

        if outcome.status is StageStatus.PENDING:
            raise RuntimeError(f"{self.stage_name} returned an unresolved outcome")
        self.logger.info(
            f"{self.stage_name} completed: {outcome.status.value}",
            extra={
                "context": {
                    "stage": outcome.stage,
                    "status": outcome.status.value,
                    "action_id": action.id,
                }
            },
        )
        self.logger_manager.log_metric(f"stage.{outcome.status.value}")
        return outcome

    def _fail_from_error(self, outcome: StageOutcome, exc: Exception) -> None:
        message = str(exc) or type(exc).__name__
        outcome.set_failed(f"{self.error_label} error: {message}")
        outcome.details = {"error": message, "error_type": type(exc).__name__}
        outcome.explanation = f"Assessment could not be completed: {message}"
        self.logger.warning(
            f"{self.stage_name} collaborator error: {message}",
            extra={"context": {"stage": outcome.stage}},
        )

    @abstractmethod
    async def _collect(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> EvidenceT:
        """Gather collaborator evidence for ``action``."""

    @abstractmethod
    def _decide(
        self, outcome: StageOutcome, evidence: EvidenceT, options: Mapping[str, Any]
    ) -> None:
        """Resolve ``outcome`` from ``evidence``."""
