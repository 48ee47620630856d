"""``mdm init`` — provision storage roots and the metadata schema.

Idempotent: running it against an initialized deployment changes nothing.
"""

from __future__ import annotations

from rich.panel import Panel

from mdm.cli.commands._common import build_orchestrator, console, fail, load_config
from mdm.core.errors import MdmError


def init_cmd() -> None:
    """Create the HOT/COLD roots and apply the schema, then exit."""
    config = load_config()
    orchestrator = build_orchestrator(config)
    try:
        schema_version = orchestrator.store.schema_version()
    except MdmError as exc:
        fail(exc)

    console.print(
        Panel(
            "\n".join([
                "[bold green]Mission Data Manager initialized.[/bold green]",
                "",
                f"[bold]Database:[/bold]       {config.db_path}",
                f"[bold]Schema version:[/bold] {schema_version}",
                f"[bold]HOT root:[/bold]       {config.hot_root}",
                f"[bold]COLD root:[/bold]      {config.cold_root}",
            ]),
            title="[bold]mdm init[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
