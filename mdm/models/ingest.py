"""Ingestion request/response schema.

``IngestRequest`` is the one place transport-supplied metadata is validated.
The orchestrator only ever sees an instance of it.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from mdm.core.errors import ValidationError
from mdm.models.objects import DEFAULT_LOGICAL_NAME, UNCLASSIFIED, StorageTier

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MISSION_ID_REQUIRED = "metadata.mission_id required"
EMPTY_BODY = "empty body"


def _check_path_segment(value: str, field: str) -> str:
    if value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"{field} must be a single path segment")
    return value


class IngestRequest(BaseModel):
    """Logical fields of one ingestion, independent of wire format.

    ============== ======== ============================ =========================
    field          required type                         default
    ============== ======== ============================ =========================
    mission_id     yes      non-empty str                —
    id             no       str                          generated
    logical_name   no       str                          ``upload.bin``
    sensor         no       str                          ``""``
    platform       no       str                          ``""``
    classification no       str                          ``UNCLASS``
    object_type    no       str                          ``""``
    content_type   no       str                          transport / octet-stream
    capture_time   no       datetime (ISO or epoch secs) ``None``
    pipeline_run_id no      str                          ``""``
    tags           no       dict                         ``{}``
    ============== ======== ============================ =========================
    """

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    mission_id: str = Field(min_length=1)
    id: str | None = None
    logical_name: str = DEFAULT_LOGICAL_NAME
    sensor: str = ""
    platform: str = ""
    classification: str = UNCLASSIFIED
    object_type: str = ""
    content_type: str = DEFAULT_CONTENT_TYPE
    capture_time: datetime | None = None
    pipeline_run_id: str = ""
    tags: dict[str, Any] = {}

    @field_validator("mission_id")
    @classmethod
    def _mission_id_segment(cls, v: str) -> str:
        return _check_path_segment(v, "mission_id")

    @field_validator("id")
    @classmethod
    def _id_segment(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        return _check_path_segment(v, "id")

    @classmethod
    def from_metadata(
        cls,
        metadata: Mapping[str, Any] | None,
        *,
        content_type: str | None = None,
    ) -> IngestRequest:
        """Validate a loosely-typed metadata mapping.

        ``content_type`` is the transport's Content-Type; it applies only
        when the metadata does not name one explicitly.

        Raises
        ------
        ValidationError
            With ``metadata.mission_id required`` when mission_id is absent
            or blank, otherwise with the first offending field.
        """
        fields = dict(metadata or {})
        if not str(fields.get("mission_id") or "").strip():
            raise ValidationError(MISSION_ID_REQUIRED)
        if not fields.get("content_type"):
            fields["content_type"] = content_type or DEFAULT_CONTENT_TYPE
        try:
            return cls.model_validate(fields)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            loc = ".".join(str(part) for part in first["loc"])
            raise ValidationError(f"metadata.{loc}: {first['msg']}") from exc


class IngestResult(BaseModel):
    """What a client needs to locate and later verify an ingested object."""

    model_config = ConfigDict(frozen=True)

    id: str
    content_digest: str
    storage_tier: StorageTier
    storage_location: str
