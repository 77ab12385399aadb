"""Message producer that publishes FTMSG records to the write queue through the queue proxy."""

import asyncio
import logging

import aiohttp

from config.config import ProducerConfig
from core.errors import ConnectivityError, ForwardError, QueueProxyError
from core.logging import log_with_context
from ingester.common.ftmsg import build_message, envelope_message
from ingester.common.http_client import AgeingClient
from ingester.common.metrics import record_forward
from ingester.common.queue_caller import check_topic_present
from ingester.common.types import QueueMessage

logger = logging.getLogger(__name__)

RECORDS_CONTENT_TYPE = "application/vnd.kafka.binary.v1+json"


class MessageProducer:
    """Publishes messages to ``{address}/topics/{topic}``."""

    def __init__(self, config: ProducerConfig, client: AgeingClient):
        self.config = config
        self.client = client
        self.address = config.address.rstrip("/")

        log_with_context(
            logger,
            logging.INFO,
            "Initialized message producer",
            address=self.address,
            topic=config.topic,
        )

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        if self.config.queue:
            headers["Host"] = self.config.queue
        if self.config.authorization_key:
            headers["Authorization"] = self.config.authorization_key
        return headers

    async def send_message(self, key: str, message: QueueMessage) -> None:
        """
        Frame, envelope and publish one message.

        Args:
            key: record key (the content uuid); empty for no key
            message: headers and body to publish unchanged

        Raises:
            ForwardError: transport failure or a status other than 200
        """
        await self.send_raw_message(key, build_message(message))

    async def send_raw_message(self, key: str, framed: str) -> None:
        url = f"{self.address}/topics/{self.config.topic}"
        payload = envelope_message(key, framed)
        try:
            async with self.client.session.post(
                url,
                data=payload,
                headers=self._headers({"Content-Type": RECORDS_CONTENT_TYPE}),
            ) as resp:
                await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            record_forward(self.config.topic, success=False)
            raise ForwardError("Error executing forward request", cause=e) from e

        if status != 200:
            record_forward(self.config.topic, success=False)
            raise ForwardError(
                f"Unexpected response status {status}. Expected: 200. {url}",
                status_code=status,
            )
        record_forward(self.config.topic)

    async def connectivity_check(self) -> str:
        try:
            await self._check_proxy_reachable()
        except QueueProxyError as e:
            logger.error("Producer connectivity check failed", extra={"error_message": str(e)})
            raise ConnectivityError(f"Error connecting to producer proxy: {e}") from e
        return "Connectivity to producer proxy is OK."

    async def _check_proxy_reachable(self) -> None:
        try:
            async with self.client.session.get(
                f"{self.address}/topics", headers=self._headers()
            ) as resp:
                body = await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise QueueProxyError(f"Could not connect to proxy: {e}", cause=e) from e

        if status != 200:
            raise QueueProxyError(f"Producer proxy returned status: {status}", status_code=status)
        check_topic_present(body, self.config.topic)


__all__ = ["MessageProducer", "RECORDS_CONTENT_TYPE"]
