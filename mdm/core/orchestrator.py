"""Ingestion orchestrator — turns a validated request into a persisted object.

The IngestionOrchestrator wires the digest engine, the identity generator,
the storage backend and the metadata store into one ordered algorithm:

1. validate            (no side effects on failure)
2. resolve id
3. digest the bytes
4. store the bytes     (StorageError: clean failure, nothing recorded)
5. build the record
6. insert the record   (duplicate id: ConflictError, this attempt's bytes orphaned)
7. append CREATED      (failure: logged, record stays, no rollback)
8. return the result

Nothing is retried and nothing is rolled back. The orchestrator holds no
per-request state and no locks, so one instance serves concurrent workers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from mdm.config import MdmConfig
from mdm.core.errors import (
    ConflictError,
    DuplicateObjectError,
    MdmError,
    PersistenceError,
    StartupError,
    StorageError,
    ValidationError,
)
from mdm.core.hasher import sha256_hex
from mdm.core.identity import new_object_id
from mdm.core.metadata_store import MetadataStore
from mdm.core.storage_backend import LocalTieredBackend
from mdm.models.ingest import EMPTY_BODY, MISSION_ID_REQUIRED, IngestRequest, IngestResult
from mdm.models.objects import EventKind, HistoryEvent, ObjectRecord, StorageTier, utc_now

logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """Single authoritative ingestion algorithm.

    Parameters
    ----------
    backend:
        Where artifact bytes go.
    store:
        Where records and history go. Sole arbiter of id uniqueness.
    id_factory:
        Produces ids for requests that carry none.
    clock:
        Returns the current UTC time.
    """

    def __init__(
        self,
        backend: LocalTieredBackend,
        store: MetadataStore,
        *,
        id_factory: Callable[[], str] = new_object_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.backend = backend
        self.store = store
        self._id_factory = id_factory
        self._clock = clock

    @classmethod
    def from_config(cls, config: MdmConfig) -> IngestionOrchestrator:
        """Build the backend and store from configuration.

        Creates both storage roots and applies the schema. Any failure is
        fatal and reported as ``StartupError``.
        """
        backend = LocalTieredBackend(config.hot_root, config.cold_root)
        try:
            backend.ensure_roots()
            store = MetadataStore(config.db_path)
        except MdmError as exc:
            logger.critical("Startup failed: %s", exc)
            raise StartupError(str(exc)) from exc
        return cls(backend, store)

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def ingest(
        self,
        request: IngestRequest,
        data: bytes,
        *,
        actor: str = "api",
        source: str = "/ingest",
    ) -> IngestResult:
        """Persist *data* and its metadata.

        Raises
        ------
        ValidationError
            mission_id missing or *data* empty. Nothing was written.
        StorageError
            Byte write failed. Nothing was recorded.
        ConflictError
            The id already exists. Bytes were written and are now orphaned.
        PersistenceError
            Record insert failed after the bytes were written.
        """
        # 1. Validate
        if not request.mission_id:
            raise ValidationError(MISSION_ID_REQUIRED)
        if not data:
            raise ValidationError(EMPTY_BODY)

        # 2. Resolve id
        object_id = request.id or self._id_factory()

        # 3. Digest the exact bytes that will be stored
        digest = sha256_hex(data)

        # 4. Store
        try:
            location = self.backend.put(StorageTier.HOT, request.mission_id, object_id, data)
        except StorageError as exc:
            logger.error(
                "Ingest %s aborted: storage write failed (mission=%s): %s",
                object_id,
                request.mission_id,
                exc,
                extra={"object_id": object_id, "mission_id": request.mission_id},
            )
            raise

        # 5. Build the record
        now = self._clock()
        record = ObjectRecord(
            id=object_id,
            logical_name=request.logical_name,
            mission_id=request.mission_id,
            sensor=request.sensor,
            platform=request.platform,
            classification=request.classification,
            tags=request.tags,
            byte_size=len(data),
            content_digest=digest,
            storage_tier=StorageTier.HOT,
            storage_location=location,
            created_at=now,
            updated_at=now,
            object_type=request.object_type,
            content_type=request.content_type,
            capture_time=request.capture_time,
            pipeline_run_id=request.pipeline_run_id,
        )

        # 6. Insert
        try:
            self.store.insert(record)
        except DuplicateObjectError as exc:
            logger.warning(
                "Ingest %s rejected: id already exists; this attempt's bytes orphaned at %s",
                object_id,
                location,
                extra={"object_id": object_id, "mission_id": request.mission_id},
            )
            raise ConflictError(
                f"object {object_id!r} already exists",
                object_id=object_id,
                location=location,
            ) from exc
        except PersistenceError as exc:
            logger.error(
                "Ingest %s failed: metadata insert failed after storage write (%s); "
                "bytes orphaned at %s",
                object_id,
                exc,
                location,
                extra={"object_id": object_id, "mission_id": request.mission_id},
            )
            raise

        # 7. History
        event = HistoryEvent(
            object_id=object_id,
            event_kind=EventKind.CREATED.value,
            details={
                "source": source,
                "content_digest": digest,
                "byte_size": len(data),
            },
            at=max(self._clock(), record.created_at),
            actor=actor,
        )
        try:
            self.store.append_history(event)
        except PersistenceError as exc:
            logger.error(
                "Object %s created but its CREATED history entry was not recorded: %s",
                object_id,
                exc,
                extra={"object_id": object_id, "mission_id": request.mission_id},
            )

        logger.info(
            "Ingested %s (mission=%s, %d bytes, sha256=%s)",
            object_id,
            request.mission_id,
            len(data),
            digest,
            extra={
                "object_id": object_id,
                "mission_id": request.mission_id,
                "byte_size": len(data),
                "content_digest": digest,
            },
        )

        # 8. Result
        return IngestResult(
            id=object_id,
            content_digest=digest,
            storage_tier=record.storage_tier,
            storage_location=location,
        )
