"""Configuration helpers for the pipeline."""

from __future__ import annotations

from .defaults import PIPELINE_DEFAULTS
from .env import load_environment, settings_from_environment
from .settings import (
    AuditSettings,
    BiocentricSettings,
    ConsentSettings,
    IntergenerationalSettings,
    LoggingSettings,
    OverrideSettings,
    PipelineSettings,
    StageSettings,
)

__all__ = [
    "PIPELINE_DEFAULTS",
    "AuditSettings",
    "BiocentricSettings",
    "ConsentSettings",
    "IntergenerationalSettings",
    "LoggingSettings",
    "OverrideSettings",
    "PipelineSettings",
    "StageSettings",
    "load_environment",
    "settings_from_environment",
]
