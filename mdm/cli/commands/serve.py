"""``mdm serve`` — run the HTTP ingestion service under uvicorn."""

from __future__ import annotations

import typer

from mdm.api.app import create_app
from mdm.cli.commands._common import build_orchestrator, console, fail, load_config
from mdm.core.errors import StartupError
from mdm.core.production_guard import enforce_production_constraints


def serve_cmd(
    host: str = typer.Option(None, "--host", help="Bind address (default: MDM_HOST)."),
    port: int = typer.Option(None, "--port", "-p", help="Listening port (default: MDM_PORT)."),
) -> None:
    """Start the service. Exits 1 if configuration, storage or schema are unusable."""
    import uvicorn

    config = load_config()
    try:
        enforce_production_constraints(config)
    except StartupError as exc:
        fail(exc)

    orchestrator = build_orchestrator(config)
    app = create_app(config, orchestrator)

    bind_host = host or config.host
    bind_port = port or config.port
    auth = "enabled" if config.auth_enabled else "[yellow]disabled[/yellow]"
    console.print(
        f"[bold]Mission Data Manager[/bold] listening on http://{bind_host}:{bind_port} "
        f"(auth {auth})"
    )
    uvicorn.run(app, host=bind_host, port=bind_port, log_config=None)
