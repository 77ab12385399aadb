"""Dotted path lookups over decoded JSON documents."""

from typing import Any


def get_value_at_path(data: Any, path: str) -> Any:
    """
    Walk ``data`` along a dotted path and return the value found, or None.

    Segments address object keys; a segment made of digits also indexes
    into a list, so ``"items.0.uuid"`` reaches the first item's uuid.
    """
    current = data
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return None
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def get_string_at_path(data: Any, path: str) -> str | None:
    """Like :func:`get_value_at_path` but only returns string values."""
    value = get_value_at_path(data, path)
    if isinstance(value, str):
        return value
    return None
