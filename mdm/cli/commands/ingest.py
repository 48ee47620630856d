"""``mdm ingest`` — ingest a local file without going through HTTP.

Runs the same orchestrator as the service, recording ``cli`` as the actor.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from mdm.cli.commands._common import build_orchestrator, console, fail, load_config
from mdm.core.errors import MdmError, ValidationError
from mdm.models.ingest import IngestRequest


def ingest_cmd(
    file: Path = typer.Argument(..., help="File to ingest."),
    mission: str = typer.Option(..., "--mission", "-m", help="Mission id (namespace)."),
    object_id: str = typer.Option(None, "--id", help="Object id. Generated if omitted."),
    meta: str = typer.Option(
        None, "--meta", help="Extra metadata as a JSON object (sensor, tags, ...)."
    ),
) -> None:
    """Ingest FILE and print the resulting id, digest and location as JSON."""
    config = load_config()

    try:
        fields = json.loads(meta) if meta else {}
        if not isinstance(fields, dict):
            raise ValidationError("--meta must be a JSON object")
    except json.JSONDecodeError as exc:
        fail(ValidationError(f"--meta is not valid JSON: {exc}"))
    except ValidationError as exc:
        fail(exc)

    fields.setdefault("logical_name", file.name)
    fields["mission_id"] = mission
    if object_id:
        fields["id"] = object_id

    try:
        data = file.read_bytes()
    except OSError as exc:
        fail(ValidationError(f"cannot read {file}: {exc}"))

    orchestrator = build_orchestrator(config)
    try:
        request = IngestRequest.from_metadata(fields)
        result = orchestrator.ingest(request, data, actor="cli", source="cli:ingest")
    except MdmError as exc:
        fail(exc)

    console.print_json(result.model_dump_json())
