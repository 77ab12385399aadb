"""Per-message orchestration: parse, route, write to the native store, forward."""

import logging
from typing import Protocol

from core.errors import ForwardError, ParseError, RoutingSkip, WriteError
from core.logging import LogContext, log_exception, log_monitoring_event, log_with_context
from ingester.common.metrics import (
    record_dropped,
    record_ingested,
    record_skipped,
    record_write_failure,
)
from ingester.common.types import QueueMessage
from ingester.native.message import PublicationEvent
from ingester.native.writer import ContentWriter

logger = logging.getLogger(__name__)

MONITORING_EVENT = "Ingest"


class Forwarder(Protocol):
    async def send_message(self, key: str, message: QueueMessage) -> None:
        ...


class MessageHandler:
    """
    Handles one consumed message at a time; safe to call concurrently.

    Every failure is logged and the message dropped. Nothing is retried here:
    redelivery, if any, is the queue's business.
    """

    def __init__(self, writer: ContentWriter, producer: Forwarder | None = None):
        self.writer = writer
        self.producer = producer

    @property
    def forwards(self) -> bool:
        return self.producer is not None

    def forward_to(self, producer: Forwarder) -> None:
        """Forward messages to ``producer`` after each successful write."""
        self.producer = producer

    async def handle_message(self, message: QueueMessage) -> None:
        event = PublicationEvent(message)
        tid = event.transaction_id
        with LogContext(transaction_id=tid):
            await self._handle(event)

    async def _handle(self, event: PublicationEvent) -> None:
        tid = event.transaction_id

        try:
            native_msg = event.to_native_message()
        except ParseError as e:
            record_dropped(e.category.value)
            log_exception(
                logger,
                e,
                "Error unmarshalling content body from publication event. Ignoring message.",
                include_traceback=False,
                transaction_id=tid,
            )
            return

        origin_id = event.origin_system_id
        content_type = event.content_type
        try:
            collection = self.writer.get_collection(origin_id, content_type)
        except RoutingSkip as e:
            record_skipped(type(e).__name__)
            log_with_context(
                logger,
                logging.INFO,
                f"Skipping content because of not whitelisted Origin-System-Id and Content-Type: {e}",
                transaction_id=tid,
                origin_system_id=origin_id,
                content_type=content_type,
            )
            return

        try:
            content_uuid = await self.writer.write_to_collection(native_msg, collection)
        except ParseError as e:
            record_dropped(e.category.value)
            log_exception(
                logger,
                e,
                "Error extracting uuid. Ignoring message.",
                include_traceback=False,
                transaction_id=tid,
                collection=collection,
            )
            return
        except WriteError as e:
            record_write_failure(collection)
            record_dropped(e.category.value)
            log_exception(
                logger,
                e,
                "Failed to write native content",
                include_traceback=False,
                transaction_id=tid,
                collection=collection,
                http_status=e.status_code,
            )
            return
        record_ingested(collection)

        if self.producer is not None:
            log_with_context(
                logger,
                logging.INFO,
                "Forwarding consumed message to different queue",
                transaction_id=tid,
                uuid=content_uuid,
            )
            try:
                await self.producer.send_message("", event.message)
            except ForwardError as e:
                log_exception(
                    logger,
                    e,
                    "Failed to forward consumed message to a different queue",
                    include_traceback=False,
                    transaction_id=tid,
                    uuid=content_uuid,
                    http_status=e.status_code,
                )
                return

        log_monitoring_event(
            logger,
            MONITORING_EVENT,
            tid,
            content_uuid,
            content_type,
            "Successfully ingested",
        )
