"""Helpers shared by CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from mdm.config import MdmConfig
from mdm.core.errors import MdmError
from mdm.core.orchestrator import IngestionOrchestrator
from mdm.logging_config import configure_logging

console = Console()


def load_config() -> MdmConfig:
    config = MdmConfig()
    configure_logging(
        log_level=config.log_level,
        environment=config.environment,
        debug=config.debug,
    )
    return config


def build_orchestrator(config: MdmConfig) -> IngestionOrchestrator:
    """Build the orchestrator, or exit 1 if startup fails."""
    try:
        return IngestionOrchestrator.from_config(config)
    except MdmError as exc:
        fail(exc)


def fail(exc: MdmError) -> NoReturn:
    """Print an error with its kind and exit non-zero."""
    console.print(f"[bold red]{exc.kind}[/bold red]: {escape(str(exc))}")
    raise typer.Exit(code=1)
