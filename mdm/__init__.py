"""Mission Data Manager: artifact ingestion into tiered storage with an audit history.

  - SHA-256 content digests computed before bytes are written
  - HOT/COLD tiered filesystem storage with atomic whole-file writes
  - SQLite metadata store; primary key is the sole id-uniqueness arbiter
  - Append-only object history, enforced by triggers
  - FastAPI ingestion endpoint, typer CLI, env-driven config
"""

__version__ = "0.2.0"
__description__ = "Artifact ingestion into tiered storage with an append-only audit history"

from mdm.core.orchestrator import IngestionOrchestrator

__all__ = ["IngestionOrchestrator", "__version__"]
