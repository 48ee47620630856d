"""Round-trip integrity check for stored objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from mdm.core.errors import NotFoundError
from mdm.core.hasher import sha256_file
from mdm.core.metadata_store import MetadataStore
from mdm.core.storage_backend import LocalTieredBackend


class IntegrityReport(BaseModel):
    """Recorded vs. recomputed digest and size for one object."""

    model_config = ConfigDict(frozen=True)

    object_id: str
    expected_digest: str
    actual_digest: str
    expected_size: int
    actual_size: int

    @property
    def ok(self) -> bool:
        return (
            self.expected_digest == self.actual_digest
            and self.expected_size == self.actual_size
        )


def verify_object(
    store: MetadataStore, backend: LocalTieredBackend, object_id: str
) -> IntegrityReport:
    """Re-hash the bytes at an object's recorded location.

    Raises ``NotFoundError`` if the record or its bytes are missing.
    """
    record = store.get_object(object_id)
    if record is None:
        raise NotFoundError(f"No object with id {object_id!r}")

    path = backend.path_for(record.storage_tier, record.storage_location)
    if not path.is_file():
        raise NotFoundError(
            f"Bytes for {object_id!r} missing at {record.storage_location}"
        )

    return IntegrityReport(
        object_id=object_id,
        expected_digest=record.content_digest,
        actual_digest=sha256_file(path),
        expected_size=record.byte_size,
        actual_size=path.stat().st_size,
    )
