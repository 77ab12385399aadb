"""Content UUID extraction from native bodies."""

import re
from collections.abc import Sequence
from typing import Any

from core.errors import UUIDNotFoundError
from core.utils import get_string_at_path

_HEX_UUID = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

# Canonical, urn:uuid:, braced and bare 32-hex forms.
_UUID_PATTERN = re.compile(
    rf"(?:urn:uuid:)?{_HEX_UUID}|\{{{_HEX_UUID}\}}|[0-9a-fA-F]{{32}}"
)


def is_valid_uuid(value: str) -> bool:
    return _UUID_PATTERN.fullmatch(value) is not None


class ContentBodyParser:
    """Probes an ordered list of dotted JSON paths for the content UUID."""

    def __init__(self, uuid_paths: Sequence[str]):
        self.uuid_paths = tuple(uuid_paths)

    def get_uuid(self, body: dict[str, Any]) -> str:
        """Return the first valid UUID found, in path order.

        Raises:
            UUIDNotFoundError: no path holds a valid UUID
        """
        for path in self.uuid_paths:
            candidate = get_string_at_path(body, path)
            if candidate is not None and is_valid_uuid(candidate):
                return candidate
        raise UUIDNotFoundError(context={"paths": list(self.uuid_paths)})
