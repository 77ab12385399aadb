"""Queue proxy consumer: per-stream poll/consume/commit loop with bounded concurrent dispatch."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from config.config import QueueConfig
from core.errors import ConnectivityError, QueueProxyError
from core.logging import LogContext, log_exception, log_with_context
from core.utils import generate_worker_id
from ingester.common.http_client import AgeingClient
from ingester.common.metrics import (
    batch_processing_duration_seconds,
    record_messages_consumed,
    update_active_instances,
)
from ingester.common.queue_caller import QueueProxyClient
from ingester.common.types import ConsumerInstance, QueueMessage

logger = logging.getLogger(__name__)

MessageHandler = Callable[[QueueMessage], Awaitable[None]]


class QueueConsumer:
    """
    One consumer stream.

    Owns a single consumer instance on the proxy, created lazily and dropped
    on any consume error (and, under the ``reset`` policy, on commit errors).
    Not safe to share between tasks.
    """

    def __init__(
        self,
        config: QueueConfig,
        queue: QueueProxyClient,
        handler: MessageHandler,
        shutdown: asyncio.Event,
        stream_id: str,
    ):
        self.config = config
        self.queue = queue
        self.handler = handler
        self.stream_id = stream_id
        self._shutdown = shutdown
        self._instance: ConsumerInstance | None = None

    @property
    def instance(self) -> ConsumerInstance | None:
        return self._instance

    async def consume_while_active(self) -> None:
        """Poll until shutdown is requested, then destroy the instance."""
        with LogContext(stream_id=self.stream_id):
            log_with_context(
                logger,
                logging.INFO,
                "Starting consumer stream",
                topic=self.config.topic,
                group=self.config.group,
            )
            try:
                while not self._shutdown.is_set():
                    try:
                        had_work = await self.poll_once()
                    except Exception:
                        logger.error("Error in consumption loop", exc_info=True)
                        had_work = False
                    if not had_work:
                        await self._backoff()
            finally:
                await self._destroy_instance()
                logger.info("Consumer stream stopped")

    async def poll_once(self) -> bool:
        """
        Run one consume iteration.

        Returns:
            True when a non-empty batch was handled and the stream should poll
            again straight away, False when it should back off first.
        """
        if self._instance is None:
            try:
                self._instance = await self.queue.create_consumer_instance()
            except QueueProxyError as e:
                log_exception(logger, e, "Error creating consumer instance", include_traceback=False)
                return False
            update_active_instances(self.config.group, 1)

        try:
            messages = await self.queue.consume_messages(self._instance)
        except QueueProxyError as e:
            log_exception(logger, e, "Error consuming messages", include_traceback=False)
            await self._destroy_instance()
            return False

        if not messages:
            return False

        record_messages_consumed(self.config.topic, self.config.group, len(messages))
        start_time = time.perf_counter()
        await self._dispatch(messages)
        batch_processing_duration_seconds.labels(topic=self.config.topic).observe(
            time.perf_counter() - start_time
        )

        if not self.config.auto_commit_enable:
            return await self._commit()
        return True

    async def _commit(self) -> bool:
        try:
            await self.queue.commit_offsets(self._instance)
        except QueueProxyError as e:
            if self.config.commit_failure_policy == "best_effort":
                log_exception(
                    logger,
                    e,
                    "Error committing offsets, keeping consumer instance",
                    level=logging.WARNING,
                    include_traceback=False,
                )
                return True
            log_exception(logger, e, "Error committing offsets", include_traceback=False)
            await self._destroy_instance()
            return False
        return True

    async def _dispatch(self, messages: list[QueueMessage]) -> None:
        """Hand a batch to the handler; returns only once every message is handled."""
        if not self.config.concurrent_processing:
            for message in messages:
                await self._handle_one(message)
            return

        pending: asyncio.Queue[QueueMessage] = asyncio.Queue()
        for message in messages:
            pending.put_nowait(message)

        async def worker() -> None:
            while True:
                try:
                    message = pending.get_nowait()
                except asyncio.QueueEmpty:
                    return
                await self._handle_one(message)

        workers = min(self.config.processors, len(messages))
        await asyncio.gather(*(worker() for _ in range(workers)))

    async def _handle_one(self, message: QueueMessage) -> None:
        try:
            await self.handler(message)
        except Exception:
            logger.error(
                "Unhandled error from message handler",
                extra={"transaction_id": message.header("X-Request-Id") or None},
                exc_info=True,
            )

    async def _backoff(self) -> None:
        """Sleep for the backoff period, waking early on shutdown."""
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=self.config.backoff_period_seconds)
        except asyncio.TimeoutError:
            pass

    async def _destroy_instance(self) -> None:
        instance, self._instance = self._instance, None
        if instance is None:
            return
        update_active_instances(self.config.group, -1)
        try:
            await self.queue.destroy_consumer_instance(instance)
        except QueueProxyError as e:
            log_exception(logger, e, "Error deleting consumer instance", include_traceback=False)


class MessageConsumer:
    """
    Runs ``stream_count`` independent QueueConsumer streams.

    Usage:
        consumer = MessageConsumer(config.read_queue, handler.handle_message, client)
        task = asyncio.create_task(consumer.start())
        ...
        consumer.stop()
        await task
    """

    def __init__(self, config: QueueConfig, handler: MessageHandler, client: AgeingClient):
        self.config = config
        self._shutdown = asyncio.Event()
        self._probe = QueueProxyClient(config, client)
        self.streams = [
            QueueConsumer(
                config,
                QueueProxyClient(config, client),
                handler,
                self._shutdown,
                stream_id=generate_worker_id(f"stream{i}"),
            )
            for i in range(max(config.stream_count, 1))
        ]

        log_with_context(
            logger,
            logging.INFO,
            "Initialized message consumer",
            addresses=",".join(config.addresses),
            topic=config.topic,
            group=config.group,
            stream_count=len(self.streams),
            processors=config.processors if config.concurrent_processing else 1,
            backoff_seconds=config.backoff_period_seconds,
        )

    async def start(self) -> None:
        """Run every stream; returns once all of them have shut down."""
        await asyncio.gather(*(stream.consume_while_active() for stream in self.streams))

    def stop(self) -> None:
        logger.info("Stopping message consumer")
        self._shutdown.set()

    @property
    def is_stopping(self) -> bool:
        return self._shutdown.is_set()

    async def connectivity_check(self) -> str:
        try:
            return await self._probe.check_connectivity()
        except QueueProxyError as e:
            log_exception(logger, e, "Consumer connectivity check failed", include_traceback=False)
            raise ConnectivityError(f"Error connecting to consumer proxies: {e}") from e


__all__ = ["MessageConsumer", "MessageHandler", "QueueConsumer"]
