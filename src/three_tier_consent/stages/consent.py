"""Stage 2: human consent with vulnerability windows and a deliberation floor."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
import time
from typing import Any

from three_tier_consent.collaborators.interfaces import (
    ConsentRequester,
    ConsentResponse,
    VulnerabilityWindow,
)
from three_tier_consent.config.settings import ConsentSettings
from three_tier_consent.enums import ConsentStatus, StageKey
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.outcome import MitigationMeasure, StageOutcome
from three_tier_consent.stages.base import StageEvaluator
from three_tier_consent.utilities.awaitables import resolve
from three_tier_consent.utilities.clock import Clock, ensure_utc, utc_now
from three_tier_consent.utilities.logger_manager import LoggerManager

Sleeper = Callable[[float], Awaitable[None]]

DEFERRAL_VULNERABILITY = "vulnerability_window"
DEFERRAL_CONSENT = "consent_deferred"


@dataclass(frozen=True)
class ConsentEvidence:
    """Either a vulnerability deferral or a reviewer response."""

    retry_at: datetime | None = None
    response: ConsentResponse | None = None
    deliberation_seconds: float = 0.0


class ConsentEvaluator(StageEvaluator[ConsentEvidence]):
    stage_key = StageKey.CONSENT
    stage_name = "Sapient Intent Confirmation"
    error_label = "Sapient intent confirmation"

    def __init__(
        self,
        settings: ConsentSettings,
        requester: ConsentRequester,
        logger_manager: LoggerManager,
        vulnerability_window: VulnerabilityWindow | None = None,
        clock: Clock = utc_now,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        super().__init__(settings, logger_manager, clock)
        self.settings: ConsentSettings = settings
        self.requester = requester
        self.vulnerability_window = vulnerability_window
        self._sleep = sleep

    async def _collect(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> ConsentEvidence:
        profile = options.get("user_profile")
        if (
            profile
            and self.settings.neurodivergent_support
            and self.vulnerability_window is not None
        ):
            window = self.vulnerability_window
            if await resolve(window.is_vulnerable(profile, self._clock())):
                retry_at = await resolve(window.next_optimal_window(profile))
                return ConsentEvidence(retry_at=ensure_utc(retry_at))

        started = time.monotonic()
        raw = await resolve(self.requester.request_confirmation(action, options))
        response = (
            raw
            if isinstance(raw, ConsentResponse)
            else ConsentResponse.model_validate(raw)
        )
        remaining = self.settings.min_deliberation_seconds - (
            time.monotonic() - started
        )
        if remaining > 0:
            await self._sleep(remaining)
        return ConsentEvidence(
            response=response, deliberation_seconds=time.monotonic() - started
        )

    def _decide(
        self,
        outcome: StageOutcome,
        evidence: ConsentEvidence,
        options: Mapping[str, Any],
    ) -> None:
        if evidence.response is None:
            self._defer_for_vulnerability(outcome, evidence)
            return

        response = evidence.response
        deliberation = (
            response.deliberation_seconds
            if response.deliberation_seconds is not None
            else evidence.deliberation_seconds
        )
        outcome.confidence = response.response.confidence
        outcome.details = {
            "status": response.status,
            "deliberation_seconds": deliberation,
            "neurodivergent_accommodations": bool(options.get("user_profile")),
            "human_response": response.response.model_dump(),
        }
        outcome.warnings.extend(response.response.concerns)

        if response.status == ConsentStatus.CONFIRMED.value:
            outcome.set_passed("Sapient intent confirmed with explicit human consent.")
            outcome.explanation = (
                f"Human consent explicitly granted after {deliberation:.1f}s. "
                f'Response: "{response.response.summary}"'
            )
        elif response.status == ConsentStatus.VETOED.value:
            reason = response.response.rationale or response.reason or "Consent vetoed"
            outcome.set_failed(reason)
            outcome.explanation = f"Human veto authority exercised. Reason: {reason}"
        elif response.status == ConsentStatus.DEFERRED.value:
            retry_at = ensure_utc(response.defer_until) if response.defer_until else None
            outcome.details["deferral"] = DEFERRAL_CONSENT
            outcome.details["retry_at"] = retry_at.isoformat() if retry_at else None
            outcome.set_conditional(
                "Sapient intent confirmation deferred to optimal decision window.",
                [
                    MitigationMeasure(
                        measure="Re-request confirmation during optimal cognitive window",
                        expected_benefit="Higher quality decision-making",
                        implementation_timeline=(
                            retry_at.isoformat() if retry_at else "when reviewer is ready"
                        ),
                        retry_at=retry_at,
                    )
                ],
            )
            outcome.explanation = (
                f"Decision deferred: {response.reason or 'reviewer requested more time'}."
            )
        else:
            outcome.set_failed("Sapient intent confirmation failed or unclear consent.")
            outcome.explanation = (
                f"Could not obtain clear human consent. Status: {response.status}"
            )

    def _defer_for_vulnerability(
        self, outcome: StageOutcome, evidence: ConsentEvidence
    ) -> None:
        retry_at = evidence.retry_at
        if retry_at is None:
            raise RuntimeError("Vulnerability deferral requires a retry time")
        outcome.details = {
            "deferral": DEFERRAL_VULNERABILITY,
            "retry_at": retry_at.isoformat(),
            "neurodivergent_accommodations": True,
        }
        outcome.set_conditional(
            "Current time is within a vulnerability window; consent request deferred.",
            [
                MitigationMeasure(
                    measure="Retry consent request at the next optimal window",
                    expected_benefit="Higher quality decision-making",
                    implementation_timeline=retry_at.isoformat(),
                    retry_at=retry_at,
                )
            ],
        )
        outcome.explanation = (
            f"Consent was not requested inside a vulnerability window. "
            f"Optimal time: {retry_at.isoformat()}"
        )
