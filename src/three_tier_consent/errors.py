"""Error hierarchy and failure taxonomy for pipeline runs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from three_tier_consent.enums import OrchestratorState


class ConsentPipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ActionValidationError(ConsentPipelineError, ValueError):
    """A proposed action is malformed; raised before any stage runs."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class OverrideValidationError(ConsentPipelineError, ValueError):
    """An emergency override request was refused."""


class ContinuationError(ConsentPipelineError, ValueError):
    """A continuation token cannot be used to resume a deferred run."""


class OrchestrationFault(ConsentPipelineError, RuntimeError):
    """A pipeline run failed for a reason other than a decision."""

    def __init__(
        self,
        message: str,
        *,
        result_id: str | None = None,
        state: OrchestratorState | None = None,
    ) -> None:
        super().__init__(message)
        self.result_id = result_id
        self.state = state


class FailureKind(str, Enum):
    INPUT_VALIDATION = "input_validation"
    COLLABORATOR = "collaborator"
    OVERRIDE_VALIDATION = "override_validation"
    ORCHESTRATION = "orchestration"


@dataclass(frozen=True)
class FailureProfile:
    audited: bool
    raises: bool
    user_visible: bool


FAILURE_PROFILES: dict[FailureKind, FailureProfile] = {
    FailureKind.INPUT_VALIDATION: FailureProfile(
        audited=False, raises=True, user_visible=True
    ),
    # Converted to a failed stage outcome, which the audit trail records.
    FailureKind.COLLABORATOR: FailureProfile(
        audited=True, raises=False, user_visible=True
    ),
    FailureKind.OVERRIDE_VALIDATION: FailureProfile(
        audited=False, raises=True, user_visible=True
    ),
    FailureKind.ORCHESTRATION: FailureProfile(
        audited=False, raises=True, user_visible=True
    ),
}


def failure_profile_for(kind: FailureKind) -> FailureProfile:
    profile = FAILURE_PROFILES.get(kind)
    if profile is None:
        raise RuntimeError(f"Missing failure profile for {kind.value}")
    return profile


def classify_error(exc: BaseException) -> FailureKind:
    """Map a raised error onto the failure taxonomy."""
    if isinstance(exc, ActionValidationError):
        return FailureKind.INPUT_VALIDATION
    if isinstance(exc, OverrideValidationError):
        return FailureKind.OVERRIDE_VALIDATION
    return FailureKind.ORCHESTRATION


if set(FAILURE_PROFILES) != set(FailureKind):
    missing = set(FailureKind) - set(FAILURE_PROFILES)
    raise RuntimeError(
        "Failure profiles must cover all failure kinds: "
        f"missing={sorted(kind.value for kind in missing)}"
    )
