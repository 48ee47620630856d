"""Content digests and canonical JSON.

One SHA-256 implementation (``hashlib``) is used on every platform, so a
digest computed at ingestion can be recomputed anywhere later.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

DIGEST_HEX_LENGTH = 64
_CHUNK_SIZE = 1024 * 1024


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    ).encode("utf-8")


def canonical_json(obj: Any) -> str:
    """Canonical JSON as text, for TEXT columns."""
    return canonical_json_bytes(obj).decode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path, chunk_size: int = _CHUNK_SIZE) -> str:
    """Stream a file through SHA-256 without loading it into memory.

    Produces the same value as ``sha256_hex(path.read_bytes())``.
    """
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()
