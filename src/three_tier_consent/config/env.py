"""Environment-driven configuration for command-line and service use."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from three_tier_consent.config.defaults import (
    ENV_AUDIT_PATH,
    ENV_CONFIG_PATH,
    ENV_HALT_ON_FIRST_FAILURE,
    ENV_MIN_DELIBERATION_SECONDS,
)
from three_tier_consent.config.settings import PipelineSettings

_TRUTHY = {"1", "true", "yes", "on"}


def load_environment(dotenv_path: str | Path | None = None) -> None:
    """Load a `.env` file when available so overrides below can see it."""
    path = Path(dotenv_path) if dotenv_path else Path(".env")
    if path.exists():
        load_dotenv(dotenv_path=path)


def _env_flag(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in _TRUTHY


def settings_from_environment(
    dotenv_path: str | Path | None = None,
    base: PipelineSettings | None = None,
) -> PipelineSettings:
    """Resolve settings from ``CONSENT_PIPELINE_*`` variables.

    ``CONSENT_PIPELINE_CONFIG`` names a YAML file used when no ``base`` is
    given; the remaining variables then override individual values.
    """
    load_environment(dotenv_path)
    config_path = os.getenv(ENV_CONFIG_PATH)
    if base is not None:
        settings = base
    elif config_path:
        settings = PipelineSettings.load(config_path)
    else:
        settings = PipelineSettings()

    halt = _env_flag(ENV_HALT_ON_FIRST_FAILURE)
    if halt is not None:
        settings = settings.with_updates(halt_on_first_failure=halt)

    audit_path = os.getenv(ENV_AUDIT_PATH)
    if audit_path:
        settings = settings.with_updates(audit={"path": audit_path})

    deliberation = os.getenv(ENV_MIN_DELIBERATION_SECONDS)
    if deliberation:
        try:
            seconds = float(deliberation)
        except ValueError as exc:
            raise ValueError(
                f"{ENV_MIN_DELIBERATION_SECONDS} must be a number, got {deliberation!r}"
            ) from exc
        settings = settings.with_updates(consent={"min_deliberation_seconds": seconds})
    return settings


__all__ = ["load_environment", "settings_from_environment"]
