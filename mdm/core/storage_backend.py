"""Tiered local-filesystem byte store.

Storage layout: {tier_root}/{namespace}/{object_id}/{attempt}
The namespace is the mission id. Every put gets a fresh attempt token, so
two writes for the same object id never share a file. The returned
location is the absolute path of the stored file.

The backend enforces no uniqueness; object ids are unique because the
metadata store says so, not because of anything here.
"""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from pathlib import Path

from mdm.core.errors import NotFoundError, StorageError
from mdm.models.objects import StorageTier

logger = logging.getLogger(__name__)


def _check_segment(value: str, what: str) -> str:
    if (
        not value
        or value in (".", "..")
        or "/" in value
        or "\\" in value
        or "\x00" in value
    ):
        raise StorageError(f"Invalid {what} for storage address: {value!r}")
    return value


class LocalTieredBackend:
    """Whole-or-nothing file writes under one root directory per tier.

    Parameters
    ----------
    hot_root:
        Root directory of the HOT tier.
    cold_root:
        Root directory of the COLD tier.
    """

    def __init__(self, hot_root: Path, cold_root: Path) -> None:
        self._roots = {
            StorageTier.HOT: Path(hot_root),
            StorageTier.COLD: Path(cold_root),
        }

    def root_for(self, tier: StorageTier) -> Path:
        return self._roots[StorageTier(tier)]

    def ensure_roots(self) -> None:
        """Create every tier root. Raises ``StorageError`` if one cannot be made."""
        for tier, root in self._roots.items():
            try:
                root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(f"Cannot create {tier.value} root {root}: {exc}") from exc

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put(
        self,
        tier: StorageTier,
        namespace: str,
        object_id: str,
        data: bytes,
    ) -> str:
        """Durably write *data* and return its location.

        The bytes go to a temporary file in the object's directory, are
        fsynced, then renamed to a fresh attempt address. A failure at any
        point leaves nothing at that address and removes the temp file.
        Earlier writes for the same object id are never touched.

        Raises
        ------
        StorageError
            On any I/O, space or permission failure. Never retried here.
        """
        _check_segment(namespace, "namespace")
        _check_segment(object_id, "object id")
        directory = self.root_for(tier) / namespace / object_id
        target = directory / uuid.uuid4().hex

        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".", suffix=".tmp")
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as exc:
            raise StorageError(f"Failed to write {namespace}/{object_id}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temp file %s", tmp_name)

        location = str(target.resolve())
        logger.debug("Stored %d bytes at %s", len(data), location)
        return location

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def path_for(self, tier: StorageTier, location: str) -> Path:
        """Resolve *location* to a path, refusing anything outside the tier root."""
        root = self.root_for(tier).resolve()
        path = Path(location).resolve()
        if root != path and root not in path.parents:
            raise StorageError(f"Location {location!r} is outside the {StorageTier(tier).value} tier")
        return path

    def read(self, tier: StorageTier, location: str) -> bytes:
        """Return the exact bytes stored at *location*."""
        path = self.path_for(tier, location)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Nothing stored at {location}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to read {location}: {exc}") from exc
