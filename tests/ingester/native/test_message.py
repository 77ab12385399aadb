"""Tests for publication events and native messages."""

import json

import pytest

from core.errors import InvalidBodyError, MissingTimestampError
from ingester.common.types import QueueMessage
from ingester.native.message import NativeMessage, PublicationEvent

METHODE = "http://cmdb.ft.com/systems/methode-web-pub"


def _make_event(body='{"uuid": "u"}', **headers):
    base = {
        "X-Request-Id": "tid_1",
        "Origin-System-Id": f"  {METHODE} ",
        "Message-Timestamp": "2026-01-05T14:30:00.000Z",
        "Content-Type": "application/json",
    }
    base.update(headers)
    return PublicationEvent(QueueMessage(headers={k: v for k, v in base.items() if v is not None}, body=body))


class TestPublicationEvent:

    def test_header_accessors(self):
        event = _make_event(**{"Native-Hash": "abc"})

        assert event.transaction_id == "tid_1"
        assert event.origin_system_id == METHODE
        assert event.content_type == "application/json"
        assert event.native_hash == "abc"
        assert event.timestamp == "2026-01-05T14:30:00.000Z"

    def test_missing_headers_are_empty(self):
        event = PublicationEvent(QueueMessage(body="{}"))

        assert event.transaction_id == ""
        assert event.origin_system_id == ""
        assert event.timestamp is None


class TestToNativeMessage:

    def test_body_is_augmented(self):
        msg = _make_event(body='{"uuid": "u", "title": "T"}').to_native_message()

        assert msg.body == {
            "uuid": "u",
            "title": "T",
            "lastModified": "2026-01-05T14:30:00.000Z",
            "publishReference": "tid_1",
        }

    def test_store_headers(self):
        msg = _make_event(**{"Native-Hash": "abc"}).to_native_message()

        assert msg.headers == {
            "X-Request-Id": "tid_1",
            "X-Native-Hash": "abc",
            "Content-Type": "application/json",
            "X-Origin-System-Id": METHODE,
        }
        assert msg.transaction_id == "tid_1"
        assert msg.content_type == "application/json"

    def test_optional_headers_are_left_out(self):
        msg = _make_event(**{"Content-Type": None}).to_native_message()

        assert "X-Native-Hash" not in msg.headers
        assert "Content-Type" not in msg.headers
        assert msg.content_type == ""

    def test_missing_timestamp(self):
        with pytest.raises(MissingTimestampError, match="does not contain timestamp"):
            _make_event(**{"Message-Timestamp": None}).to_native_message()

    @pytest.mark.parametrize("body", ["not json", "[1, 2]", '"text"'])
    def test_body_must_be_a_json_object(self, body):
        with pytest.raises(InvalidBodyError):
            _make_event(body=body).to_native_message()


class TestNativeMessage:

    def test_to_json_keeps_unicode(self):
        msg = NativeMessage.from_body('{"title": "Café"}', "ts", "tid_1")

        assert json.loads(msg.to_json()) == {"title": "Café", "lastModified": "ts", "publishReference": "tid_1"}
        assert "Café".encode() in msg.to_json()
