"""Main Typer application — imports and registers all CLI commands.

Entry point: ``mdm`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from mdm.cli.commands.ingest import ingest_cmd
from mdm.cli.commands.init import init_cmd
from mdm.cli.commands.serve import serve_cmd
from mdm.cli.commands.verify import verify_cmd

app = typer.Typer(
    name="mdm",
    help="Mission Data Manager: artifact ingestion with an append-only audit history.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="init", help="Create storage roots and the metadata schema.")(init_cmd)
app.command(name="serve", help="Run the HTTP ingestion service.")(serve_cmd)
app.command(name="ingest", help="Ingest a local file.")(ingest_cmd)
app.command(name="verify", help="Re-hash a stored object and compare with its record.")(verify_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
