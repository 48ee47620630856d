"""Mission Data Manager CLI — Typer-based command-line interface.

Provides the ``mdm`` command with subcommands for provisioning the store,
serving the HTTP API, ingesting local files and verifying stored objects.

All output uses Rich for formatted terminal display.
"""
