"""HTTP transport for ingestion.

Wire format of ``POST /ingest``:

- body: the raw artifact bytes
- ``X-MDM-Meta``: a JSON object with the metadata fields of ``IngestRequest``
- ``Content-Type``: used as ``content_type`` when the metadata has none
- ``X-API-Key``: shared secret, required only when one is configured

The handler is a plain ``def`` so Starlette runs each ingestion in its
worker thread pool; hashing and file I/O never block the event loop.
"""

from __future__ import annotations

import hmac
import json
import logging
import time
import uuid
from typing import Any, Callable

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from mdm import __version__
from mdm.config import MdmConfig
from mdm.core.errors import (
    AuthError,
    ConflictError,
    MalformedRequestError,
    MdmError,
    NotFoundError,
    PersistenceError,
    StorageError,
    ValidationError,
)
from mdm.core.orchestrator import IngestionOrchestrator
from mdm.logging_config import request_id_var
from mdm.models.ingest import EMPTY_BODY, IngestRequest, IngestResult

logger = logging.getLogger(__name__)

META_HEADER = "X-MDM-Meta"
API_KEY_HEADER = "X-API-Key"
REQUEST_ID_HEADER = "X-Request-ID"

# Most specific first
_STATUS_BY_ERROR: list[tuple[type[MdmError], int]] = [
    (MalformedRequestError, 400),
    (ValidationError, 422),
    (AuthError, 401),
    (ConflictError, 409),
    (NotFoundError, 404),
    (StorageError, 500),
    (PersistenceError, 500),
]


def _status_for(exc: MdmError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Accept or assign an X-Request-ID and expose it to logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            start = time.perf_counter()
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.debug(
                "%s %s -> %d (%.1f ms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
            return response
        finally:
            request_id_var.reset(token)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def require_api_key(
    request: Request,
    x_api_key: str | None = Header(None, alias=API_KEY_HEADER),
) -> None:
    """Reject the request unless it carries the configured shared secret."""
    expected: str = request.app.state.config.api_key
    if not expected:
        return
    if x_api_key is None or not hmac.compare_digest(
        x_api_key.encode("utf-8"), expected.encode("utf-8")
    ):
        raise AuthError("unauthorized")


async def read_body(request: Request) -> bytes:
    return await request.body()


def get_orchestrator(request: Request) -> IngestionOrchestrator:
    return request.app.state.orchestrator


def parse_metadata(raw: str | None) -> dict[str, Any]:
    """Decode the metadata header. Absent means an empty mapping."""
    if not raw:
        return {}
    try:
        meta = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedRequestError("invalid JSON in metadata") from exc
    if not isinstance(meta, dict):
        raise MalformedRequestError("metadata must be a JSON object")
    return meta


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(
    config: MdmConfig | None = None,
    orchestrator: IngestionOrchestrator | None = None,
) -> FastAPI:
    """Build the ingestion service.

    Without an explicit *orchestrator* one is built from *config*; that
    raises ``StartupError`` if storage roots or the schema are unusable.
    """
    config = config or MdmConfig()
    orchestrator = orchestrator or IngestionOrchestrator.from_config(config)

    app = FastAPI(
        title="Mission Data Manager",
        description="Artifact ingestion into tiered storage with an append-only audit history.",
        version=__version__,
        docs_url="/docs" if config.debug else None,
        redoc_url=None,
    )
    app.state.config = config
    app.state.orchestrator = orchestrator

    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(MdmError)
    async def mdm_error_handler(request: Request, exc: MdmError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            detail = f"{exc.kind} failure; check for partial state before retrying"
        else:
            detail = exc.message
        return JSONResponse(status_code=status, content={"error": exc.kind, "detail": detail})

    @app.get("/health", tags=["Health"])
    def health() -> dict[str, str]:
        """Liveness check. No side effects."""
        return {"status": "ok"}

    @app.post("/ingest", response_model=IngestResult, tags=["Ingest"])
    def ingest(
        _auth: None = Depends(require_api_key),
        body: bytes = Depends(read_body),
        orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
        x_mdm_meta: str | None = Header(None, alias=META_HEADER),
        content_type: str | None = Header(None),
    ) -> IngestResult:
        """Ingest one artifact."""
        if not body:
            raise MalformedRequestError(EMPTY_BODY)
        request = IngestRequest.from_metadata(
            parse_metadata(x_mdm_meta), content_type=content_type
        )
        return orchestrator.ingest(request, body, actor="api", source="/ingest")

    return app
