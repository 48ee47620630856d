"""Mission Data Manager data models — all Pydantic v2, all frozen (immutable)."""

from mdm.models.ingest import IngestRequest, IngestResult
from mdm.models.objects import EventKind, HistoryEvent, ObjectRecord, StorageTier

__all__ = [
    # objects
    "StorageTier",
    "EventKind",
    "ObjectRecord",
    "HistoryEvent",
    # ingest
    "IngestRequest",
    "IngestResult",
]
