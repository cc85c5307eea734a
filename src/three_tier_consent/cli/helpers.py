"""Support routines for the three-tier consent CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError
import yaml

from three_tier_consent.collaborators.interfaces import AuditSink
from three_tier_consent.collaborators.reference import (
    ReferenceConsentRequester,
    ReferenceEcologicalScorer,
    ReferenceProjector,
    ReferenceVulnerabilityWindow,
)
from three_tier_consent.config.env import settings_from_environment
from three_tier_consent.config.settings import PipelineSettings
from three_tier_consent.pipeline.orchestrator import ConsentPipeline
from three_tier_consent.utilities.logger_manager import LoggerManager


class CliInputError(ValueError):
    """Raised for unreadable or malformed command-line inputs."""


def load_settings(
    config_path: str | None, audit_log: str | None = None
) -> PipelineSettings:
    """Resolve settings from the config file, environment and ``--audit-log``."""
    try:
        base = PipelineSettings.load(config_path) if config_path else None
        settings = settings_from_environment(base=base)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise CliInputError(f"Failed to load config {config_path}: {exc}") from exc
    if audit_log:
        settings = settings.with_updates(audit={"path": audit_log})
    return settings


def read_json(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise CliInputError(f"Input file not found: {file_path}")
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CliInputError(f"{file_path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise CliInputError(f"{file_path} must contain a JSON object")
    return data


def build_pipeline(
    settings: PipelineSettings,
    logger_manager: LoggerManager,
    audit_sink: AuditSink | None = None,
) -> ConsentPipeline:
    """Wire a pipeline against the reference collaborators."""
    return ConsentPipeline(
        settings,
        ecological_scorer=ReferenceEcologicalScorer(),
        consent_requester=ReferenceConsentRequester(),
        projector=ReferenceProjector(
            min_equity_score=settings.intergenerational.min_equity_score
        ),
        vulnerability_window=ReferenceVulnerabilityWindow(),
        audit_sink=audit_sink,
        logger_manager=logger_manager,
    )


def to_json(payload: BaseModel | list[BaseModel] | dict[str, Any]) -> str:
    if isinstance(payload, BaseModel):
        data: Any = payload.model_dump(mode="json")
    elif isinstance(payload, list):
        data = [item.model_dump(mode="json") for item in payload]
    else:
        data = {
            key: value.model_dump(mode="json") if isinstance(value, BaseModel) else value
            for key, value in payload.items()
        }
    return json.dumps(data, indent=2, ensure_ascii=False)


def describe_validation_error(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
