"""Service wiring: builds the ingester components from configuration and runs them."""

import logging

from config.collections import CollectionsConfig
from config.config import IngesterConfig
from core.logging import log_with_context
from ingester.common.consumer import MessageConsumer
from ingester.common.health import HealthCheck, OpsServer
from ingester.common.http_client import AgeingClient
from ingester.common.producer import MessageProducer
from ingester.common.signals import remove_shutdown_signal_handlers, setup_shutdown_signal_handlers
from ingester.handler import MessageHandler
from ingester.native.body_parser import ContentBodyParser
from ingester.native.writer import NativeWriter

logger = logging.getLogger(__name__)


class IngesterApp:
    """
    Owns every long-lived component of the service.

    Usage:
        app = IngesterApp(config, collections)
        await app.run()   # returns after SIGINT/SIGTERM or request_shutdown()
    """

    def __init__(self, config: IngesterConfig, collections: CollectionsConfig):
        self.config = config
        http = config.http

        def client(name: str) -> AgeingClient:
            return AgeingClient(
                name,
                timeout_seconds=http.timeout_seconds,
                max_connections_per_host=http.max_connections_per_host,
                max_age_seconds=http.ageing_seconds,
            )

        self.clients = [client("read-queue"), client("native-writer")]
        queue_client, writer_client = self.clients

        parser = ContentBodyParser(config.native_writer.content_uuid_fields)
        self.writer = NativeWriter(config.native_writer, collections, parser, writer_client)
        self.handler = MessageHandler(self.writer)

        self.producer: MessageProducer | None = None
        if config.write_queue.enabled:
            producer_client = client("write-queue")
            self.clients.append(producer_client)
            self.producer = MessageProducer(config.write_queue, producer_client)
            self.handler.forward_to(self.producer)

        self.consumer = MessageConsumer(config.read_queue, self.handler.handle_message, queue_client)
        self.health = HealthCheck(
            self.consumer,
            self.writer,
            self.producer,
            app_config=config.app,
            health_config=config.health,
        )
        self.ops_server = OpsServer(self.health, port=config.app.port)

    def request_shutdown(self) -> None:
        logger.info("Shutdown requested")
        self.consumer.stop()

    async def run(self) -> None:
        log_with_context(
            logger,
            logging.INFO,
            "Starting native ingester",
            topic=self.config.read_queue.topic,
            group=self.config.read_queue.group,
            address=self.config.native_writer.address,
        )
        for http_client in self.clients:
            await http_client.start()
        await self.ops_server.start()
        setup_shutdown_signal_handlers(self.request_shutdown)
        try:
            await self.consumer.start()
        finally:
            remove_shutdown_signal_handlers()
            await self.close()

    async def close(self) -> None:
        await self.ops_server.stop()
        for http_client in self.clients:
            await http_client.close()
        logger.info("Native ingester stopped")
