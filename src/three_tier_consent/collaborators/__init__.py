"""Collaborator contracts and reference implementations."""

from __future__ import annotations

from .interfaces import (
    AlertSink,
    AuditSink,
    ConsentDetail,
    ConsentRequester,
    ConsentResponse,
    EcologicalAssessment,
    EcologicalScorer,
    Finding,
    GenerationRisk,
    IntergenerationalProjector,
    OperationalAlert,
    ProjectionReport,
    TippingPoint,
    VulnerabilityWindow,
)

__all__ = [
    "AlertSink",
    "AuditSink",
    "ConsentDetail",
    "ConsentRequester",
    "ConsentResponse",
    "EcologicalAssessment",
    "EcologicalScorer",
    "Finding",
    "GenerationRisk",
    "IntergenerationalProjector",
    "OperationalAlert",
    "ProjectionReport",
    "TippingPoint",
    "VulnerabilityWindow",
]
