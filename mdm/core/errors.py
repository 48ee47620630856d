"""Error taxonomy for ingestion.

Every failure the core can report carries a ``kind`` so callers can tell
"retry is ambiguous" (``storage``, ``persistence``) apart from "never retry
with the same input" (``validation``, ``conflict``) without parsing messages.
"""

from __future__ import annotations


class MdmError(RuntimeError):
    """Base class for all Mission Data Manager errors."""

    kind: str = "internal"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MdmError):
    """Missing or malformed required input. No side effects have occurred."""

    kind = "validation"


class AuthError(MdmError):
    """Missing or invalid authorization credential."""

    kind = "auth"


class ConflictError(MdmError):
    """An object with the requested id already exists.

    The bytes of the rejected attempt may already have been written to
    storage (orphaned). ``location`` carries that address when known.
    """

    kind = "conflict"

    def __init__(self, message: str = "", *, object_id: str = "", location: str = "") -> None:
        super().__init__(message)
        self.object_id = object_id
        self.location = location


class StorageError(MdmError):
    """Byte-store failure: I/O, exhausted space, permission denied."""

    kind = "storage"


class PersistenceError(MdmError):
    """Metadata-store failure."""

    kind = "persistence"


class DuplicateObjectError(MdmError):
    """Raised by the metadata store when an ``objects.id`` already exists."""

    kind = "duplicate"

    def __init__(self, object_id: str) -> None:
        super().__init__(f"Object {object_id!r} already exists")
        self.object_id = object_id


class NotFoundError(MdmError):
    """Requested object or location does not exist."""

    kind = "not_found"


class StartupError(MdmError):
    """Fatal initialization failure. The process must not keep running."""

    kind = "startup"


class MalformedRequestError(ValidationError):
    """The request envelope itself is unusable: empty body, unparseable metadata."""
