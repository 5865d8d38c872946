"""
This module defines the core data models for the store using Pydantic.
These models serve as the data transfer objects (DTOs): the store
configuration, the full-store serialization format, snapshots and change
notifications.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .schema import ModelSchema


class StoreConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: int = Field(
        default=1,
        validation_alias=AliasChoices("schema_version", "schemaVersion"),
    )
    models: Dict[str, ModelSchema] = Field(default_factory=dict)
    # Oldest undo entries are dropped beyond this depth. None keeps everything.
    history_limit: int | None = Field(default=None, ge=0)


class StoreState(BaseModel):
    """The full serialized state of a store, keyed by model type name."""

    schema_version: int
    collections: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: int
    schema_version: int
    state: bytes  # zlib-compressed JSON of a StoreState
    timestamp: datetime


class Change(BaseModel):
    """One logically complete mutation, as seen by change listeners."""

    model_config = ConfigDict(frozen=True)

    reason: Literal["create", "update", "delete", "restore", "sandbox"]
    changes: Dict[str, List[Any]] = Field(default_factory=dict)
    version: int
    timestamp: datetime

    def touches(self, scope: str) -> bool:
        return scope == "@all" or scope in self.changes
