"""Shared test fixtures for Mission Data Manager."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mdm.config import MdmConfig
from mdm.core.metadata_store import MetadataStore
from mdm.core.orchestrator import IngestionOrchestrator
from mdm.core.storage_backend import LocalTieredBackend
from mdm.logging_config import RequestIdFilter
from mdm.models.ingest import IngestRequest


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test data."""
    return tmp_path


@pytest.fixture
def config(tmp_dir: Path) -> MdmConfig:
    """A config whose paths all live under the temp directory."""
    return MdmConfig(
        db_path=tmp_dir / "db" / "mission-metadata.db",
        hot_root=tmp_dir / "hot",
        cold_root=tmp_dir / "cold",
        _env_file=None,
    )


@pytest.fixture
def store(config: MdmConfig) -> MetadataStore:
    """Provide a fresh MetadataStore backed by a temp SQLite database."""
    return MetadataStore(config.db_path)


@pytest.fixture
def backend(config: MdmConfig) -> LocalTieredBackend:
    """Provide a LocalTieredBackend with temp HOT/COLD roots."""
    b = LocalTieredBackend(config.hot_root, config.cold_root)
    b.ensure_roots()
    return b


@pytest.fixture
def orchestrator(backend: LocalTieredBackend, store: MetadataStore) -> IngestionOrchestrator:
    """Provide an orchestrator wired to the test backend and store."""
    return IngestionOrchestrator(backend, store)


@pytest.fixture
def make_request() -> Callable[..., IngestRequest]:
    """Factory fixture: build an IngestRequest with sensible defaults."""

    def _factory(mission_id: str = "mission-alpha", **overrides: Any) -> IngestRequest:
        fields: dict[str, Any] = {"mission_id": mission_id}
        fields.update(overrides)
        return IngestRequest.from_metadata(fields)

    return _factory


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """CLI commands reconfigure the root logger; undo that after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if any(isinstance(f, RequestIdFilter) for f in handler.filters):
            root.removeHandler(handler)
    root.setLevel(level)
