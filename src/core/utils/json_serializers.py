"""JSON serialization helpers used by the log formatters."""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID


def _serialize_known_type(obj: Any) -> tuple[bool, Any]:
    """Try to serialize by known type. Returns (handled, result)."""
    if isinstance(obj, (datetime, date)):
        return True, obj.isoformat()
    if isinstance(obj, Decimal):
        return True, float(obj)
    if isinstance(obj, (Path, UUID)):
        return True, str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return True, obj.decode("utf-8", errors="replace")
    return False, None


def json_serializer(obj: Any) -> Any:
    """
    Fallback serializer for ``json.dumps(default=...)``.

    - datetime/date -> ISO 8601 string
    - Decimal -> float
    - Path, UUID -> string
    - bytes -> UTF-8 text, undecodable bytes replaced
    - Enums -> value
    - Everything else -> string
    """
    handled, result = _serialize_known_type(obj)
    if handled:
        return result
    if hasattr(obj, "value"):
        return obj.value
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


__all__ = ["json_serializer"]
