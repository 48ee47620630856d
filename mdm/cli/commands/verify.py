"""``mdm verify`` — round-trip integrity check of one stored object."""

from __future__ import annotations

import typer
from rich.table import Table

from mdm.cli.commands._common import build_orchestrator, console, fail, load_config
from mdm.core.errors import MdmError
from mdm.core.integrity import verify_object


def verify_cmd(
    object_id: str = typer.Argument(..., help="Id of the object to verify."),
) -> None:
    """Exit 0 if the stored bytes still match the recorded digest and size."""
    config = load_config()
    orchestrator = build_orchestrator(config)

    try:
        report = verify_object(orchestrator.store, orchestrator.backend, object_id)
    except MdmError as exc:
        fail(exc)

    table = Table(title=f"Integrity: {object_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Recorded")
    table.add_column("Actual")
    table.add_row("sha256", report.expected_digest, report.actual_digest)
    table.add_row("bytes", str(report.expected_size), str(report.actual_size))
    console.print(table)

    if report.ok:
        console.print("[bold green]OK[/bold green]")
    else:
        console.print("[bold red]MISMATCH[/bold red]")
        raise typer.Exit(code=1)
