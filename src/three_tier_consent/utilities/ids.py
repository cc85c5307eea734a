"""Identifier factories for results, actions and audit entries."""

from __future__ import annotations

import secrets
import time
import uuid

from three_tier_consent.constants import RESULT_ID_PREFIX


def new_result_id() -> str:
    """Return ``three-tier-<epoch ms>-<random>``."""
    return f"{RESULT_ID_PREFIX}-{int(time.time() * 1000)}-{secrets.token_hex(6)}"


def new_action_id() -> str:
    return f"action-{uuid.uuid4().hex}"


def new_entry_id() -> str:
    return f"audit-{uuid.uuid4().hex}"
