"""Tests for the log JSON serializer."""

import json
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from uuid import UUID

from core.utils import json_serializer


class Color(Enum):
    RED = "red"


class TestJsonSerializer:

    def test_datetime(self):
        assert json_serializer(datetime(2026, 1, 5, 14, 30, tzinfo=UTC)) == "2026-01-05T14:30:00+00:00"

    def test_decimal(self):
        assert json_serializer(Decimal("1.5")) == 1.5

    def test_path_and_uuid(self):
        uid = UUID("5e0ad5e5-c3d4-387d-9875-ec15501808e5")
        assert json_serializer(uid) == "5e0ad5e5-c3d4-387d-9875-ec15501808e5"
        assert json_serializer(Path("logs")) == "logs"

    def test_bytes(self):
        assert json_serializer(b"abc\xff") == "abc�"

    def test_enum(self):
        assert json_serializer(Color.RED) == "red"

    def test_as_dumps_default(self):
        payload = json.dumps({"status": Color.RED}, default=json_serializer)

        assert payload == '{"status": "red"}'

    def test_fallback_to_str(self):
        class Opaque:
            __slots__ = ()

            def __str__(self):
                return "opaque"

        assert json_serializer(Opaque()) == "opaque"
