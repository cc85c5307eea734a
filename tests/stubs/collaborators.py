"""Scripted collaborators for pipeline tests."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from three_tier_consent.collaborators.interfaces import OperationalAlert
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.audit import AuditEntry, AuditQuery

BASE_TIME = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class StubScorer:
    def __init__(
        self,
        *,
        confidence: float = 0.9,
        net_harm: float = -5.0,
        overall_score: float = 5.0,
        mitigation: list[Any] | None = None,
        error: Exception | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        self.confidence = confidence
        self.net_harm = net_harm
        self.overall_score = overall_score
        self.mitigation = mitigation or []
        self.error = error
        self.payload = payload
        self.calls: list[ProposedAction] = []

    def assess(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        self.calls.append(action)
        if self.error is not None:
            raise self.error
        if self.payload is not None:
            return self.payload
        return {
            "overallScore": self.overall_score,
            "confidence": self.confidence,
            "dimensionScores": {"biodiversity": self.overall_score},
            "netHarm": self.net_harm,
            "mitigationMeasures": self.mitigation,
        }


class StubConsent:
    """Async reviewer returning a scripted answer."""

    def __init__(
        self,
        status: str = "confirmed",
        *,
        rationale: str = "Looks acceptable",
        concerns: list[str] | None = None,
        defer_until: datetime | None = None,
        reason: str | None = None,
        error: Exception | None = None,
    ) -> None:
        self.status = status
        self.rationale = rationale
        self.concerns = concerns or []
        self.defer_until = defer_until
        self.reason = reason
        self.error = error
        self.calls: list[tuple[ProposedAction, Mapping[str, Any]]] = []

    async def request_confirmation(
        self, action: ProposedAction, options: Mapping[str, Any]
    ) -> dict[str, Any]:
        self.calls.append((action, options))
        if self.error is not None:
            raise self.error
        return {
            "status": self.status,
            "response": {
                "summary": "scripted reviewer",
                "rationale": self.rationale,
                "confidence": 0.9,
                "concerns": self.concerns,
            },
            "defer_until": self.defer_until,
            "reason": self.reason,
        }


class StubVulnerability:
    def __init__(self, vulnerable: bool, retry_at: datetime | None = None) -> None:
        self.vulnerable = vulnerable
        self.retry_at = retry_at or BASE_TIME + timedelta(hours=20)
        self.checked_at: list[datetime] = []

    def is_vulnerable(self, user_profile: Mapping[str, Any], now: datetime) -> bool:
        self.checked_at.append(now)
        return self.vulnerable

    async def next_optimal_window(self, user_profile: Mapping[str, Any]) -> datetime:
        return self.retry_at


class StubProjector:
    def __init__(
        self,
        verdict: str = "approved",
        *,
        overall_score: float = 10.0,
        equity_score: float = 80.0,
        tipping_points: list[dict[str, Any]] | None = None,
        required_modifications: list[Any] | None = None,
        critical_findings: list[str] | None = None,
        rationale: str = "Projection complete",
        error: Exception | None = None,
    ) -> None:
        self.verdict = verdict
        self.overall_score = overall_score
        self.equity_score = equity_score
        self.tipping_points = tipping_points or []
        self.required_modifications = required_modifications or []
        self.critical_findings = critical_findings or []
        self.rationale = rationale
        self.error = error
        self.calls: list[tuple[int, int]] = []

    async def project(
        self, action: ProposedAction, generation_count: int, years_per_generation: int
    ) -> dict[str, Any]:
        self.calls.append((generation_count, years_per_generation))
        if self.error is not None:
            raise self.error
        return {
            "verdict": self.verdict,
            "rationale": self.rationale,
            "overallScore": self.overall_score,
            "equityScore": self.equity_score,
            "tippingPoints": self.tipping_points,
            "requiredModifications": self.required_modifications,
            "criticalFindings": self.critical_findings,
        }


class FailingAuditSink:
    def append(self, entry: AuditEntry) -> None:
        raise OSError("audit store unavailable")

    def query(self, filters: AuditQuery) -> list[AuditEntry]:
        return []


class RecordingAlertSink:
    def __init__(self) -> None:
        self.alerts: list[OperationalAlert] = []

    async def notify(self, alert: OperationalAlert) -> None:
        self.alerts.append(alert)
