"""Publication events and the native message written to the store."""

import json
from dataclasses import dataclass, field
from typing import Any

from core.errors import InvalidBodyError, MissingTimestampError
from ingester.common.types import QueueMessage

TRANSACTION_ID_HEADER = "X-Request-Id"
ORIGIN_SYSTEM_ID_HEADER = "Origin-System-Id"
MESSAGE_TIMESTAMP_HEADER = "Message-Timestamp"
NATIVE_HASH_HEADER = "Native-Hash"
CONTENT_TYPE_HEADER = "Content-Type"

# Headers sent to the native store
STORE_TRANSACTION_ID_HEADER = "X-Request-Id"
STORE_NATIVE_HASH_HEADER = "X-Native-Hash"
STORE_ORIGIN_SYSTEM_ID_HEADER = "X-Origin-System-Id"


class PublicationEvent:
    """Read-only view over an inbound queue message."""

    def __init__(self, message: QueueMessage):
        self.message = message

    @property
    def transaction_id(self) -> str:
        return self.message.header(TRANSACTION_ID_HEADER)

    @property
    def origin_system_id(self) -> str:
        return self.message.header(ORIGIN_SYSTEM_ID_HEADER).strip()

    @property
    def content_type(self) -> str:
        return self.message.header(CONTENT_TYPE_HEADER)

    @property
    def native_hash(self) -> str:
        return self.message.header(NATIVE_HASH_HEADER)

    @property
    def timestamp(self) -> str | None:
        return self.message.headers.get(MESSAGE_TIMESTAMP_HEADER)

    def to_native_message(self) -> "NativeMessage":
        """
        Build the store write request for this event.

        Raises:
            MissingTimestampError: no Message-Timestamp header
            InvalidBodyError: body is not a JSON object
        """
        timestamp = self.timestamp
        if timestamp is None:
            raise MissingTimestampError(context={"transaction_id": self.transaction_id})

        msg = NativeMessage.from_body(self.message.body, timestamp, self.transaction_id)
        if self.native_hash:
            msg.add_hash_header(self.native_hash)
        if self.content_type:
            msg.add_content_type_header(self.content_type)
        msg.add_origin_system_id_header(self.origin_system_id)
        return msg


@dataclass
class NativeMessage:
    """Decoded content body augmented for the store, plus the headers to send with it."""

    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_body(cls, content_body: str, timestamp: str, transaction_id: str) -> "NativeMessage":
        try:
            body = json.loads(content_body)
        except ValueError as e:
            raise InvalidBodyError("Message body is not valid JSON", cause=e) from e
        if not isinstance(body, dict):
            raise InvalidBodyError("Message body is not a JSON object")

        body["lastModified"] = timestamp
        body["publishReference"] = transaction_id
        return cls(body=body, headers={STORE_TRANSACTION_ID_HEADER: transaction_id})

    @property
    def transaction_id(self) -> str:
        return self.headers.get(STORE_TRANSACTION_ID_HEADER, "")

    @property
    def content_type(self) -> str:
        return self.headers.get(CONTENT_TYPE_HEADER, "")

    def add_hash_header(self, native_hash: str) -> None:
        self.headers[STORE_NATIVE_HASH_HEADER] = native_hash

    def add_content_type_header(self, content_type: str) -> None:
        self.headers[CONTENT_TYPE_HEADER] = content_type

    def add_origin_system_id_header(self, origin_system_id: str) -> None:
        self.headers[STORE_ORIGIN_SYSTEM_ID_HEADER] = origin_system_id

    def to_json(self) -> bytes:
        return json.dumps(self.body, ensure_ascii=False).encode("utf-8")
