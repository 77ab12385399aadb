"""Message and session types shared by the queue consumer, forwarder and handler."""

from dataclasses import dataclass, field

__all__ = [
    "QueueMessage",
    "ConsumerInstance",
]


@dataclass(frozen=True)
class QueueMessage:
    """A message read from, or written to, the queue proxy: headers plus an opaque body."""

    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name, default)


@dataclass(frozen=True)
class ConsumerInstance:
    """Server-assigned consumer session on the queue proxy."""

    base_uri: str
    instance_id: str = ""

    @classmethod
    def from_response(cls, data: dict) -> "ConsumerInstance":
        return cls(base_uri=str(data.get("base_uri", "")), instance_id=str(data.get("instance_id", "")))
