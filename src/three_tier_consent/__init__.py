"""Three-tier consent pipeline: biocentric, consent and intergenerational gating."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__all__ = [
    "AggregateResult",
    "ConsentPipeline",
    "OverrideRequest",
    "PipelineSettings",
    "ProposedAction",
]

if TYPE_CHECKING:
    from .config.settings import PipelineSettings
    from .models.action import ProposedAction
    from .models.result import AggregateResult, OverrideRequest
    from .pipeline.orchestrator import ConsentPipeline


def __getattr__(name: str) -> Any:
    if name == "ConsentPipeline":
        from .pipeline.orchestrator import ConsentPipeline

        return ConsentPipeline
    if name == "PipelineSettings":
        from .config.settings import PipelineSettings

        return PipelineSettings
    if name == "ProposedAction":
        from .models.action import ProposedAction

        return ProposedAction
    if name in {"AggregateResult", "OverrideRequest"}:
        from .models import result

        return getattr(result, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
