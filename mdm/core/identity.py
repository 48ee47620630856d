"""Object identifiers.

Ids exist for uniqueness only and must never be used as security tokens.
The metadata store's primary key is the real uniqueness guarantee.
"""

from __future__ import annotations

import uuid


def new_object_id() -> str:
    """Return a random (version 4) UUID in canonical 8-4-4-4-12 form."""
    return str(uuid.uuid4())


def is_object_id(value: str) -> bool:
    """Whether *value* is a canonical lowercase UUID4 string."""
    try:
        parsed = uuid.UUID(value)
    except (AttributeError, TypeError, ValueError):
        return False
    return parsed.version == 4 and str(parsed) == value
