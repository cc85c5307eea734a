"""Aggregation, override and orchestration for the consent pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__all__ = [
    "ConsentPipeline",
    "DecisionSignal",
    "EmergencyOverrideProtocol",
    "OrchestratorStateMachine",
]

if TYPE_CHECKING:
    from .aggregator import DecisionSignal
    from .orchestrator import ConsentPipeline
    from .override import EmergencyOverrideProtocol
    from .state_machine import OrchestratorStateMachine


def __getattr__(name: str) -> Any:
    if name == "ConsentPipeline":
        from .orchestrator import ConsentPipeline

        return ConsentPipeline
    if name == "DecisionSignal":
        from .aggregator import DecisionSignal

        return DecisionSignal
    if name == "EmergencyOverrideProtocol":
        from .override import EmergencyOverrideProtocol

        return EmergencyOverrideProtocol
    if name == "OrchestratorStateMachine":
        from .state_machine import OrchestratorStateMachine

        return OrchestratorStateMachine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
