"""Fixed values shared by the pipeline and its audit records."""

from __future__ import annotations

AUDIT_MARKER = "#ThreeTierConsent"
"""Tag stamped on every persisted audit entry."""
OVERRIDE_MARKER = "#EmergencyOverride"
MIN_JUSTIFICATION_LENGTH = 50
DEFAULT_MIN_APPROVERS = 2
DAYS_PER_YEAR = 365
RESULT_ID_PREFIX = "three-tier"
