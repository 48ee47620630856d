"""Tests for MetadataStore — schema, uniqueness, append-only history."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mdm.core.errors import DuplicateObjectError, PersistenceError
from mdm.core.metadata_store import SCHEMA_VERSION, MetadataStore
from mdm.models.objects import EventKind, HistoryEvent, ObjectRecord, StorageTier

T0 = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _record(object_id: str = "obj-1", **overrides) -> ObjectRecord:
    fields = dict(
        id=object_id,
        logical_name="frame.raw",
        mission_id="m1",
        sensor="eo-1",
        platform="uav-7",
        tags={"run": 3, "site": "north"},
        byte_size=11,
        content_digest="b" * 64,
        storage_tier=StorageTier.HOT,
        storage_location=f"/data/hot/m1/{object_id}",
        created_at=T0,
        updated_at=T0,
        object_type="frame",
        content_type="application/octet-stream",
        capture_time=T0,
        pipeline_run_id="run-42",
    )
    fields.update(overrides)
    return ObjectRecord(**fields)


def _schema_objects(db_path: Path) -> list[tuple[str, str]]:
    conn = sqlite3.connect(str(db_path))
    try:
        return conn.execute(
            "SELECT type, name FROM sqlite_master WHERE name NOT LIKE 'sqlite_%' ORDER BY name"
        ).fetchall()
    finally:
        conn.close()


class TestSchema:
    def test_tables_created(self, store: MetadataStore):
        names = {name for _, name in _schema_objects(store.db_path)}
        assert {"objects", "object_history"} <= names

    def test_init_is_idempotent(self, tmp_path: Path):
        db = tmp_path / "meta.db"
        MetadataStore(db)
        before = _schema_objects(db)
        MetadataStore(db)
        MetadataStore(db).init_schema()
        assert _schema_objects(db) == before

    def test_schema_version(self, store: MetadataStore):
        assert store.schema_version() == SCHEMA_VERSION

    def test_parent_directory_created(self, tmp_path: Path):
        store = MetadataStore(tmp_path / "nested" / "dir" / "meta.db")
        assert store.db_path.exists()

    def test_unopenable_path_raises_persistence_error(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_bytes(b"")
        with pytest.raises(PersistenceError):
            MetadataStore(blocker / "meta.db")

    def test_existing_data_survives_reinit(self, store: MetadataStore):
        store.insert(_record())
        store.init_schema()
        assert store.count_objects() == 1


class TestInsert:
    def test_insert_and_get_round_trip(self, store: MetadataStore):
        rec = _record()
        store.insert(rec)
        assert store.get_object("obj-1") == rec

    def test_get_missing(self, store: MetadataStore):
        assert store.get_object("nope") is None

    def test_duplicate_id_rejected(self, store: MetadataStore):
        store.insert(_record())
        with pytest.raises(DuplicateObjectError) as info:
            store.insert(_record(logical_name="other.raw"))
        assert info.value.object_id == "obj-1"

    def test_duplicate_does_not_overwrite(self, store: MetadataStore):
        store.insert(_record())
        with pytest.raises(DuplicateObjectError):
            store.insert(_record(logical_name="other.raw", byte_size=99))
        kept = store.get_object("obj-1")
        assert kept is not None
        assert kept.logical_name == "frame.raw"
        assert kept.byte_size == 11
        assert store.count_objects() == 1

    def test_tags_stored_as_canonical_json(self, store: MetadataStore):
        store.insert(_record(tags={"z": 1, "a": 2}))
        conn = sqlite3.connect(str(store.db_path))
        try:
            (tags,) = conn.execute("SELECT tags FROM objects WHERE id = 'obj-1'").fetchone()
        finally:
            conn.close()
        assert tags == '{"a":2,"z":1}'

    def test_optional_capture_time(self, store: MetadataStore):
        store.insert(_record(capture_time=None))
        assert store.get_object("obj-1").capture_time is None

    def test_unavailable_store(self, store: MetadataStore):
        store.db_path.unlink()
        store.db_path.mkdir()
        with pytest.raises(PersistenceError):
            store.insert(_record())


class TestHistory:
    def test_append_and_read(self, store: MetadataStore):
        store.insert(_record())
        ev = HistoryEvent(
            object_id="obj-1",
            event_kind=EventKind.CREATED.value,
            details={"source": "/ingest"},
            at=T0,
            actor="api",
        )
        store.append_history(ev)
        assert store.get_history("obj-1") == [ev]

    def test_history_ordered_and_open_ended(self, store: MetadataStore):
        store.insert(_record())
        for kind in ("CREATED", "MIGRATED", "SOME_FUTURE_KIND"):
            store.append_history(HistoryEvent(object_id="obj-1", event_kind=kind, at=T0))
        assert [e.event_kind for e in store.get_history("obj-1")] == [
            "CREATED",
            "MIGRATED",
            "SOME_FUTURE_KIND",
        ]

    def test_history_requires_existing_object(self, store: MetadataStore):
        with pytest.raises(PersistenceError):
            store.append_history(HistoryEvent(object_id="ghost", event_kind="CREATED"))


class TestReadFailures:
    """Reads surface store failures as PersistenceError, like writes do."""

    @pytest.fixture
    def unopenable(self, tmp_path: Path) -> MetadataStore:
        return MetadataStore(tmp_path / "missing-dir" / "meta.db", initialize=False)

    def test_get_object(self, unopenable: MetadataStore):
        with pytest.raises(PersistenceError):
            unopenable.get_object("abc")

    def test_get_history(self, unopenable: MetadataStore):
        with pytest.raises(PersistenceError):
            unopenable.get_history("abc")

    def test_count_objects(self, unopenable: MetadataStore):
        with pytest.raises(PersistenceError):
            unopenable.count_objects()

    def test_schema_version(self, unopenable: MetadataStore):
        with pytest.raises(PersistenceError):
            unopenable.schema_version()

    def test_missing_tables(self, tmp_path: Path):
        bare = MetadataStore(tmp_path / "bare.db", initialize=False)
        with pytest.raises(PersistenceError):
            bare.get_object("abc")
