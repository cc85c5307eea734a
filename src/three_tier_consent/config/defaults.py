"""Explicit default settings for pipeline configuration."""

from __future__ import annotations

PIPELINE_DEFAULTS: dict[str, object] = {
    "halt_on_first_failure": False,
    "concurrency_limit": 10,
    "biocentric": {
        "enabled": True,
        "zero_net_harm_threshold": 0.0,
        "min_confidence": 0.75,
    },
    "consent": {
        "enabled": True,
        "neurodivergent_support": True,
        "min_deliberation_seconds": 10.0,
    },
    "intergenerational": {
        "enabled": True,
        "generation_count": 7,
        "years_per_generation": 25,
        "min_equity_score": -50.0,
        "max_tipping_point_probability": 0.3,
        "min_overall_score": 0.0,
    },
    "override": {
        "allow_override": True,
        "min_justification_length": 50,
        "min_approvers": 2,
        "audit_retention_years": 10,
    },
    "audit": {
        "enabled": True,
        "retention_days": 3650,
        "path": None,
    },
    "logging": {
        "log_dir": None,
        "log_level": "INFO",
        "log_file_name": "consent_pipeline.log",
        "structured_logging": False,
        "telemetry_enabled": True,
    },
}

ENV_CONFIG_PATH = "CONSENT_PIPELINE_CONFIG"
ENV_AUDIT_PATH = "CONSENT_PIPELINE_AUDIT_PATH"
ENV_HALT_ON_FIRST_FAILURE = "CONSENT_PIPELINE_HALT_ON_FIRST_FAILURE"
ENV_MIN_DELIBERATION_SECONDS = "CONSENT_PIPELINE_MIN_DELIBERATION_SECONDS"
