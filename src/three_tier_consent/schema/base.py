"""Shared Pydantic base class with consistent configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TypedBaseModel(BaseModel):
    """Common base for every record the pipeline produces or consumes.

    Subclasses narrow ``model_config`` (usually ``frozen=True``) for write-once
    records; Pydantic merges it with the settings declared here.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)
