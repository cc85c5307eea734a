"""Typed pipeline settings loaded from YAML."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ConfigDict, Field
import yaml

from three_tier_consent.constants import (
    DEFAULT_MIN_APPROVERS,
    MIN_JUSTIFICATION_LENGTH,
)
from three_tier_consent.schema.base import TypedBaseModel
from three_tier_consent.utilities.logger_manager import LoggerConfig


class StageSettings(TypedBaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True


class BiocentricSettings(StageSettings):
    """Stage 1 thresholds."""

    zero_net_harm_threshold: float = 0.0
    min_confidence: float = Field(0.75, ge=0.0, le=1.0)


class ConsentSettings(StageSettings):
    """Stage 2 behaviour; the deliberation floor is a deliberate cool-down."""

    neurodivergent_support: bool = True
    min_deliberation_seconds: float = Field(10.0, ge=0.0)


class IntergenerationalSettings(StageSettings):
    """Stage 3 horizon and thresholds."""

    generation_count: int = Field(7, ge=1)
    years_per_generation: int = Field(25, ge=1)
    min_equity_score: float = -50.0
    max_tipping_point_probability: float = Field(0.3, ge=0.0, le=1.0)
    min_overall_score: float = 0.0


class OverrideSettings(TypedBaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_override: bool = True
    min_justification_length: int = Field(MIN_JUSTIFICATION_LENGTH, ge=1)
    min_approvers: int = Field(DEFAULT_MIN_APPROVERS, ge=1)
    audit_retention_years: int = Field(10, ge=1)


class AuditSettings(TypedBaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    retention_days: int = Field(3650, ge=1)
    path: Path | None = None


class LoggingSettings(TypedBaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    log_dir: Path | None = None
    log_level: str = "INFO"
    log_file_name: str = "consent_pipeline.log"
    structured_logging: bool = False
    telemetry_enabled: bool = True

    def to_logger_config(self) -> LoggerConfig:
        return LoggerConfig(
            log_dir=self.log_dir,
            log_level=self.log_level,
            log_file_name=self.log_file_name,
            structured_logging=self.structured_logging,
            telemetry_enabled=self.telemetry_enabled,
        )


class PipelineSettings(TypedBaseModel):
    """Complete configuration tree for a ConsentPipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    halt_on_first_failure: bool = False
    concurrency_limit: int = Field(10, ge=1)
    biocentric: BiocentricSettings = Field(default_factory=BiocentricSettings)
    consent: ConsentSettings = Field(default_factory=ConsentSettings)
    intergenerational: IntergenerationalSettings = Field(
        default_factory=IntergenerationalSettings
    )
    override: OverrideSettings = Field(default_factory=OverrideSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> PipelineSettings:
        return cls.model_validate(raw)

    @classmethod
    def load(cls, path: Path | str) -> PipelineSettings:
        """Load settings from a YAML file; a missing file yields the defaults."""
        resolved = Path(path)
        if not resolved.is_file():
            return cls()
        raw = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(
                f"Config file {resolved} must contain a mapping, got {type(raw).__name__}"
            )
        return cls.from_mapping(raw)

    def with_updates(self, **sections: dict[str, Any] | Any) -> PipelineSettings:
        """Return a copy with top-level values or section fields replaced."""
        data = self.model_dump()
        for key, value in sections.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return type(self).model_validate(data)
