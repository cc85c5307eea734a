"""The proposed action submitted to the pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, ValidationError, field_validator

from three_tier_consent.enums import Priority
from three_tier_consent.errors import ActionValidationError
from three_tier_consent.schema.base import TypedBaseModel
from three_tier_consent.utilities.clock import ensure_utc, utc_now
from three_tier_consent.utilities.ids import new_action_id


class ProposedAction(TypedBaseModel):
    """Immutable description of the action being gated."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str = Field(default_factory=new_action_id)
    created_at: datetime = Field(default_factory=utc_now)
    kind: str = Field(
        "",
        validation_alias=AliasChoices("kind", "type"),
        description="Action kind, e.g. resource_extraction",
    )
    description: str = ""
    scope: Mapping[str, Any] = Field(
        default_factory=dict, description="Geographic and temporal scope"
    )
    resource_flows: Mapping[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("resource_flows", "resourceFlows"),
    )
    initiator: str = "system"
    priority: Priority = Priority.NORMAL
    context: Mapping[str, Any] = Field(default_factory=dict)

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProposedAction:
        """Build an action from caller data, accepting camelCase keys."""
        raw = dict(data)
        if "createdAt" in raw:
            raw["created_at"] = raw.pop("createdAt")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ActionValidationError(
                f"Invalid proposed action: {first.get('msg', exc)}", field=field
            ) from exc

    def validate_required(self) -> None:
        """Raise ``ActionValidationError`` unless kind and description are set."""
        if not self.kind.strip():
            raise ActionValidationError("Action kind is required", field="kind")
        if not self.description.strip():
            raise ActionValidationError(
                "Action description is required", field="description"
            )
