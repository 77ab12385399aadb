"""Native store side of the ingester: message model, uuid extraction and writer."""

from ingester.native.body_parser import ContentBodyParser
from ingester.native.message import NativeMessage, PublicationEvent
from ingester.native.writer import ContentWriter, NativeWriter

__all__ = ["ContentBodyParser", "ContentWriter", "NativeMessage", "NativeWriter", "PublicationEvent"]
