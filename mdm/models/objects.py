"""Object records and their append-only history."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StorageTier(str, Enum):
    """Storage class of an object's bytes."""

    HOT = "HOT"
    COLD = "COLD"


class EventKind(str, Enum):
    """Well-known history event kinds.

    ``HistoryEvent.event_kind`` is a plain string, so processes outside the
    ingest path may record kinds not listed here.
    """

    CREATED = "CREATED"
    MIGRATED = "MIGRATED"


UNCLASSIFIED = "UNCLASS"
DEFAULT_LOGICAL_NAME = "upload.bin"


class ObjectRecord(BaseModel):
    """Metadata for one ingested artifact — the bytes live in the storage backend.

    Immutable once written, except for the tier-migration fields
    (``storage_tier``, ``storage_location``, ``updated_at``), which only a
    migration process may change.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    logical_name: str = DEFAULT_LOGICAL_NAME
    mission_id: str = Field(min_length=1)
    sensor: str = ""
    platform: str = ""
    classification: str = UNCLASSIFIED
    tags: dict[str, Any] = {}
    byte_size: int = Field(ge=0)
    content_digest: str = Field(pattern=r"^[0-9a-f]{64}$")
    storage_tier: StorageTier
    storage_location: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Pipeline provenance
    object_type: str = ""
    content_type: str = ""
    capture_time: datetime | None = None
    pipeline_run_id: str = ""

    @model_validator(mode="after")
    def _timestamps_ordered(self) -> ObjectRecord:
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not precede created_at")
        return self


class HistoryEvent(BaseModel):
    """A single entry in an object's append-only audit history."""

    model_config = ConfigDict(frozen=True)

    object_id: str
    event_kind: str  # EventKind value or any future kind
    details: dict[str, Any] = {}
    at: datetime = Field(default_factory=utc_now)
    actor: str = ""
