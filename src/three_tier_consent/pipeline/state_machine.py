"""Enum-driven orchestrator state machine."""

from __future__ import annotations

from dataclasses import dataclass, field

from three_tier_consent.enums import OrchestratorState, StageKey

_RUNNING: dict[StageKey, OrchestratorState] = {
    StageKey.BIOCENTRIC: OrchestratorState.STAGE1_RUNNING,
    StageKey.CONSENT: OrchestratorState.STAGE2_RUNNING,
    StageKey.INTERGENERATIONAL: OrchestratorState.STAGE3_RUNNING,
}
_DONE: dict[StageKey, OrchestratorState] = {
    StageKey.BIOCENTRIC: OrchestratorState.STAGE1_DONE,
    StageKey.CONSENT: OrchestratorState.STAGE2_DONE,
    StageKey.INTERGENERATIONAL: OrchestratorState.STAGE3_DONE,
}


@dataclass
class OrchestratorStateMachine:
    state: OrchestratorState = OrchestratorState.NOT_STARTED
    history: list[OrchestratorState] = field(default_factory=list)
    _transitions: dict[OrchestratorState, tuple[OrchestratorState, ...]] = field(
        init=False
    )

    def __post_init__(self) -> None:
        S = OrchestratorState
        self._transitions = {
            S.NOT_STARTED: (S.STAGE1_RUNNING,),
            S.STAGE1_RUNNING: (S.STAGE1_DONE,),
            # Halting after a failed stage jumps straight to DECIDED.
            S.STAGE1_DONE: (S.STAGE2_RUNNING, S.DECIDED),
            S.STAGE2_RUNNING: (S.STAGE2_DONE,),
            S.STAGE2_DONE: (S.STAGE3_RUNNING, S.DECIDED),
            S.STAGE3_RUNNING: (S.STAGE3_DONE,),
            S.STAGE3_DONE: (S.DECIDED,),
            S.DECIDED: (),
        }
        self.history = [self.state]

    def transition_to(self, target: OrchestratorState) -> None:
        """Advance to the requested state if the transition is allowed."""
        allowed = self._transitions.get(self.state, ())
        if target not in allowed:
            raise RuntimeError(
                f"Invalid transition {self.state.value} -> {target.value}"
            )
        self.state = target
        self.history.append(target)

    def start_stage(self, key: StageKey) -> None:
        self.transition_to(_RUNNING[key])

    def finish_stage(self, key: StageKey) -> None:
        self.transition_to(_DONE[key])

    def decide(self) -> None:
        self.transition_to(OrchestratorState.DECIDED)

    @property
    def is_decided(self) -> bool:
        return self.state is OrchestratorState.DECIDED
