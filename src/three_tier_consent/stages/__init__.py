"""Stage evaluators, one per concern."""

from __future__ import annotations

from .base import StageEvaluator
from .biocentric import BiocentricEvaluator
from .consent import ConsentEvaluator
from .intergenerational import IntergenerationalEvaluator

__all__ = [
    "BiocentricEvaluator",
    "ConsentEvaluator",
    "IntergenerationalEvaluator",
    "StageEvaluator",
]
