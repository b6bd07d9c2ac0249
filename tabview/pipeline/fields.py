"""Record field access shared by the engines."""

from __future__ import annotations

from typing import Any


def extract_field_value(record: Any, field: str) -> Any:
    """Resolve a dotted field path (`mlMetadata.confidence`) on a record.

    Missing keys and non-mapping intermediates resolve to None.
    """
    value = record
    for key in str(field).split("."):
        if isinstance(value, dict):
            value = value.get(key)
        else:
            return None
        if value is None:
            return None
    return value
