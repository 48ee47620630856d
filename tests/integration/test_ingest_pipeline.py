"""End-to-end ingestion — HTTP through storage and metadata, under concurrency.

These tests exercise the FastAPI app, the IngestionOrchestrator, the
LocalTieredBackend and the MetadataStore working together.
"""

from __future__ import annotations

import json
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mdm.api.app import create_app
from mdm.config import MdmConfig
from mdm.core.errors import ConflictError
from mdm.core.hasher import sha256_file
from mdm.core.integrity import verify_object
from mdm.core.metadata_store import MetadataStore
from mdm.core.orchestrator import IngestionOrchestrator
from mdm.models.ingest import IngestRequest


class TestFullIngestion:
    """Service built purely from config, as ``mdm serve`` builds it."""

    @pytest.fixture
    def client(self, config: MdmConfig) -> TestClient:
        secured = config.model_copy(update={"api_key": "secret123"})
        return TestClient(create_app(secured))

    def test_ingest_then_verify(self, client: TestClient, config: MdmConfig):
        payloads = [b"frame-%d" % i * (i + 1) for i in range(5)]
        ids = []
        for i, data in enumerate(payloads):
            resp = client.post(
                "/ingest",
                content=data,
                headers={
                    "X-API-Key": "secret123",
                    "X-MDM-Meta": json.dumps({"mission_id": "sortie-7", "sensor": f"s{i}"}),
                },
            )
            assert resp.status_code == 200, resp.text
            body = resp.json()
            assert sha256_file(Path(body["storage_location"])) == body["content_digest"]
            ids.append(body["id"])

        orch = IngestionOrchestrator.from_config(config)
        for object_id in ids:
            assert verify_object(orch.store, orch.backend, object_id).ok
            history = orch.store.get_history(object_id)
            assert [e.event_kind for e in history] == ["CREATED"]
        assert orch.store.count_objects() == 5

    def test_restart_keeps_records(self, client: TestClient, config: MdmConfig):
        resp = client.post(
            "/ingest",
            content=b"persist me",
            headers={"X-API-Key": "secret123", "X-MDM-Meta": json.dumps({"mission_id": "m"})},
        )
        object_id = resp.json()["id"]

        restarted = TestClient(create_app(config.model_copy(update={"api_key": "secret123"})))
        assert restarted.get("/health").status_code == 200
        rec = MetadataStore(config.db_path).get_object(object_id)
        assert rec is not None
        assert rec.content_digest == resp.json()["content_digest"]


class TestConcurrentIngestion:
    def test_distinct_ids_all_succeed(self, orchestrator: IngestionOrchestrator):
        def work(i: int) -> str:
            req = IngestRequest.from_metadata({"mission_id": f"m{i % 3}"})
            return orchestrator.ingest(req, f"payload {i}".encode()).id

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(work, range(40)))

        assert len(set(ids)) == 40
        assert orchestrator.store.count_objects() == 40
        for object_id in ids:
            assert len(orchestrator.store.get_history(object_id)) == 1

    def test_same_id_exactly_one_winner(self, orchestrator: IngestionOrchestrator):
        workers = 8
        barrier = threading.Barrier(workers)

        def work(i: int) -> tuple[str, str]:
            req = IngestRequest.from_metadata({"mission_id": "race", "id": "contested"})
            barrier.wait()
            try:
                result = orchestrator.ingest(req, f"attempt {i} ".encode() * (i + 1))
                return "ok", result.storage_location
            except ConflictError as exc:
                return "conflict", exc.location

        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(work, range(workers)))

        kinds = [kind for kind, _ in outcomes]
        assert kinds.count("ok") == 1
        assert kinds.count("conflict") == workers - 1
        assert orchestrator.store.count_objects() == 1
        assert len(orchestrator.store.get_history("contested")) == 1

        # Losers never touch the winner's bytes
        assert verify_object(orchestrator.store, orchestrator.backend, "contested").ok
        winner = next(loc for kind, loc in outcomes if kind == "ok")
        assert orchestrator.store.get_object("contested").storage_location == winner
        assert len({loc for _, loc in outcomes}) == workers
