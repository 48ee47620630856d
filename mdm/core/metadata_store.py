"""Object metadata and append-only history, backed by SQLite.

Design:
- ``objects.id`` PRIMARY KEY is the single arbiter of id uniqueness. Inserts
  are plain INSERTs, never check-then-insert and never INSERT OR REPLACE.
- ``object_history`` is append-only; triggers abort any UPDATE or DELETE.
- WAL journal mode and a busy timeout so concurrent writers queue instead
  of failing.
- One connection per call, so a store may be shared across worker threads.
- ``insert`` and ``append_history`` each commit on their own.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from mdm.core.errors import DuplicateObjectError, PersistenceError
from mdm.core.hasher import canonical_json
from mdm.models.objects import HistoryEvent, ObjectRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_OBJECTS = """
CREATE TABLE IF NOT EXISTS objects (
    id               TEXT PRIMARY KEY NOT NULL,
    logical_name     TEXT NOT NULL DEFAULT '',
    mission_id       TEXT NOT NULL,
    sensor           TEXT NOT NULL DEFAULT '',
    platform         TEXT NOT NULL DEFAULT '',
    classification   TEXT NOT NULL DEFAULT 'UNCLASS',
    tags             TEXT NOT NULL DEFAULT '{}',
    bytes            INTEGER NOT NULL CHECK (bytes >= 0),
    sha256           TEXT NOT NULL CHECK (length(sha256) = 64),
    storage_tier     TEXT NOT NULL CHECK (storage_tier IN ('HOT', 'COLD')),
    storage_path     TEXT NOT NULL,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,
    object_type      TEXT NOT NULL DEFAULT '',
    content_type     TEXT NOT NULL DEFAULT '',
    capture_time     TEXT,
    pipeline_run_id  TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_HISTORY = """
CREATE TABLE IF NOT EXISTS object_history (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    object_id  TEXT NOT NULL REFERENCES objects(id),
    event      TEXT NOT NULL,
    details    TEXT NOT NULL DEFAULT '{}',
    at         TEXT NOT NULL,
    actor      TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_IDX_MISSION = """
CREATE INDEX IF NOT EXISTS idx_objects_mission ON objects(mission_id);
"""

_CREATE_IDX_HISTORY = """
CREATE INDEX IF NOT EXISTS idx_history_object ON object_history(object_id, id);
"""

_CREATE_NO_UPDATE = """
CREATE TRIGGER IF NOT EXISTS object_history_no_update
BEFORE UPDATE ON object_history
BEGIN
    SELECT RAISE(ABORT, 'object_history is append-only');
END;
"""

_CREATE_NO_DELETE = """
CREATE TRIGGER IF NOT EXISTS object_history_no_delete
BEFORE DELETE ON object_history
BEGIN
    SELECT RAISE(ABORT, 'object_history is append-only');
END;
"""

_SCHEMA = (
    _CREATE_OBJECTS,
    _CREATE_HISTORY,
    _CREATE_IDX_MISSION,
    _CREATE_IDX_HISTORY,
    _CREATE_NO_UPDATE,
    _CREATE_NO_DELETE,
)

_OBJECT_COLUMNS = (
    "id, logical_name, mission_id, sensor, platform, classification, tags, "
    "bytes, sha256, storage_tier, storage_path, created_at, updated_at, "
    "object_type, content_type, capture_time, pipeline_run_id"
)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class MetadataStore:
    """Transactional store for ObjectRecords and HistoryEvents.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    initialize:
        Apply the (idempotent) schema on construction.
    """

    def __init__(self, db_path: Path, *, initialize: bool = True) -> None:
        self._db_path = Path(db_path)
        if initialize:
            self.init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=5.0, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def init_schema(self) -> None:
        """Create tables, indexes and triggers. Safe to call any number of times."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._connect()
            try:
                with conn:
                    for statement in _SCHEMA:
                        conn.execute(statement)
                    conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(f"Schema initialization failed for {self._db_path}: {exc}") from exc
        logger.debug("Metadata schema v%d ready at %s", SCHEMA_VERSION, self._db_path)

    def schema_version(self) -> int:
        try:
            conn = self._connect()
            try:
                return conn.execute("PRAGMA user_version").fetchone()[0]
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot read schema version of {self._db_path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: ObjectRecord) -> None:
        """Insert one ObjectRecord.

        Raises
        ------
        DuplicateObjectError
            If a record with ``record.id`` already exists. Decided by the
            primary key inside the INSERT itself.
        PersistenceError
            On any other store failure.
        """
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        f"INSERT INTO objects ({_OBJECT_COLUMNS}) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            record.id,
                            record.logical_name,
                            record.mission_id,
                            record.sensor,
                            record.platform,
                            record.classification,
                            canonical_json(record.tags),
                            record.byte_size,
                            record.content_digest,
                            record.storage_tier.value,
                            record.storage_location,
                            _ts(record.created_at),
                            _ts(record.updated_at),
                            record.object_type,
                            record.content_type,
                            _ts(record.capture_time),
                            record.pipeline_run_id,
                        ),
                    )
            finally:
                conn.close()
        except sqlite3.IntegrityError as exc:
            if "objects.id" in str(exc):
                raise DuplicateObjectError(record.id) from exc
            raise PersistenceError(f"insert of {record.id!r} rejected: {exc}") from exc
        except sqlite3.Error as exc:
            raise PersistenceError(f"insert of {record.id!r} failed: {exc}") from exc

    def append_history(self, event: HistoryEvent) -> None:
        """Append one HistoryEvent. There is no update or delete.

        Raises
        ------
        PersistenceError
            If the store is unavailable.
        """
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO object_history (object_id, event, details, at, actor) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (
                            event.object_id,
                            event.event_kind,
                            canonical_json(event.details),
                            _ts(event.at),
                            event.actor,
                        ),
                    )
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"history append for {event.object_id!r} failed: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Reads (verification and audit only)
    # ------------------------------------------------------------------

    def get_object(self, object_id: str) -> ObjectRecord | None:
        """Return the record for *object_id*, or None."""
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    f"SELECT {_OBJECT_COLUMNS} FROM objects WHERE id = ?",
                    (object_id,),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"lookup of {object_id!r} failed: {exc}") from exc
        return self._row_to_record(row) if row else None

    def get_history(self, object_id: str) -> list[HistoryEvent]:
        """Return every history event for *object_id*, oldest first."""
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    "SELECT object_id, event, details, at, actor FROM object_history "
                    "WHERE object_id = ? ORDER BY id ASC",
                    (object_id,),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"history lookup for {object_id!r} failed: {exc}") from exc
        return [
            HistoryEvent(
                object_id=object_id_,
                event_kind=event,
                details=json.loads(details),
                at=at,
                actor=actor,
            )
            for object_id_, event, details, at, actor in rows
        ]

    def count_objects(self) -> int:
        try:
            conn = self._connect()
            try:
                return conn.execute("SELECT COUNT(*) FROM objects").fetchone()[0]
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"object count failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row: tuple) -> ObjectRecord:
        """Convert a SQLite row tuple to an ObjectRecord."""
        (
            id_,
            logical_name,
            mission_id,
            sensor,
            platform,
            classification,
            tags,
            byte_size,
            sha256,
            storage_tier,
            storage_path,
            created_at,
            updated_at,
            object_type,
            content_type,
            capture_time,
            pipeline_run_id,
        ) = row
        return ObjectRecord(
            id=id_,
            logical_name=logical_name,
            mission_id=mission_id,
            sensor=sensor,
            platform=platform,
            classification=classification,
            tags=json.loads(tags),
            byte_size=byte_size,
            content_digest=sha256,
            storage_tier=storage_tier,
            storage_location=storage_path,
            created_at=created_at,
            updated_at=updated_at,
            object_type=object_type,
            content_type=content_type,
            capture_time=capture_time,
            pipeline_run_id=pipeline_run_id,
        )
