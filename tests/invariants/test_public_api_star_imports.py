"""Invariant: public modules expose only their __all__ via star import."""

from __future__ import annotations

import importlib

PUBLIC_MODULES = {
    "three_tier_consent": (
        "AggregateResult",
        "ConsentPipeline",
        "OverrideRequest",
        "PipelineSettings",
        "ProposedAction",
    ),
    "three_tier_consent.pipeline": (
        "ConsentPipeline",
        "DecisionSignal",
        "EmergencyOverrideProtocol",
        "OrchestratorStateMachine",
    ),
    "three_tier_consent.stages": (
        "BiocentricEvaluator",
        "ConsentEvaluator",
        "IntergenerationalEvaluator",
        "StageEvaluator",
    ),
    "three_tier_consent.audit": (
        "InMemoryAlertSink",
        "InMemoryAuditSink",
        "JsonlAuditSink",
        "LoggingAlertSink",
    ),
}


def _star_imported(module_name: str) -> set[str]:
    namespace: dict[str, object] = {"__builtins__": __builtins__}
    exec(f"from {module_name} import *", namespace)
    namespace.pop("__builtins__", None)
    return set(namespace.keys())


def test_public_star_imports_match_all() -> None:
    for module_name, expected in PUBLIC_MODULES.items():
        module = importlib.import_module(module_name)
        exports = tuple(getattr(module, "__all__", ()))
        assert exports == expected, (
            f"{module_name} __all__ changed: expected {expected}, got {exports}"
        )
        assert _star_imported(module_name) == set(expected), (
            f"{module_name} star import drifted from __all__"
        )
