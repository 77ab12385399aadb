"""
FTMSG/1.0 message framing used on the queue proxy.

A framed message is a version line, ``Name: value`` header lines and a blank
line followed by the body, all separated by CRLF:

    FTMSG/1.0\r\n
    Message-Id: 7b1e...\r\n
    X-Request-Id: tid_abc\r\n
    \r\n
    {"uuid": "..."}

Records exchanged with the proxy carry the framed message base64 encoded.
"""

import base64
import json
import re

from core.errors import QueueProxyError
from ingester.common.types import QueueMessage

FTMSG_VERSION = "FTMSG/1.0"
CRLF = "\r\n"

_HEADER_LINE = re.compile(r"^([\w-]+):\s*(.*)$")
_SEPARATOR = re.compile(r"\r?\n\r?\n")


def build_message(message: QueueMessage) -> str:
    """Frame headers (sorted by name) and body into FTMSG text."""
    lines = [FTMSG_VERSION]
    for name in sorted(message.headers):
        lines.append(f"{name}: {message.headers[name]}")
    return CRLF.join(lines) + CRLF + CRLF + message.body


def parse_message(raw: str) -> QueueMessage:
    """Split FTMSG text into headers and body.

    Text without a header block is taken as a body with no headers.
    """
    parts = _SEPARATOR.split(raw, maxsplit=1)
    if len(parts) == 1:
        return QueueMessage(headers={}, body=raw)

    head, body = parts
    headers: dict[str, str] = {}
    for line in head.splitlines():
        match = _HEADER_LINE.match(line.strip())
        if match:
            headers[match.group(1)] = match.group(2).strip()
    return QueueMessage(headers=headers, body=body)


def envelope_message(key: str, message: str) -> str:
    """Wrap a framed message in the proxy's binary record envelope."""
    key64 = base64.b64encode(key.encode("utf-8")).decode("ascii") if key else ""
    value64 = base64.b64encode(message.encode("utf-8")).decode("ascii")
    return json.dumps({"records": [{"key": key64, "value": value64}]})


def decode_records(payload: bytes | str) -> list[QueueMessage]:
    """Decode a consume response: a JSON array of records with base64 values.

    Raises:
        QueueProxyError: the payload is not a record array
    """
    try:
        records = json.loads(payload)
    except ValueError as e:
        raise QueueProxyError("Could not decode consumed records", cause=e) from e
    if not isinstance(records, list):
        raise QueueProxyError("Consumed records are not a JSON array")

    messages = []
    for record in records:
        value = record.get("value") if isinstance(record, dict) else None
        if not value:
            continue
        try:
            text = base64.b64decode(value).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise QueueProxyError("Could not decode record value", cause=e) from e
        messages.append(parse_message(text))
    return messages
