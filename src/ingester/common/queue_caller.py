"""
REST client for the queue proxy.

Covers the consumer instance lifecycle (create, consume, commit, destroy) and
the topic listing used for connectivity checks. Each consumer stream owns its
own QueueProxyClient; the underlying AgeingClient session may be shared.
"""

import asyncio
import json
import logging
from urllib.parse import urlsplit

import aiohttp

from config.config import QueueConfig
from core.errors import QueueProxyError
from core.logging import log_with_context
from ingester.common.ftmsg import decode_records
from ingester.common.http_client import AgeingClient
from ingester.common.metrics import record_queue_proxy_error
from ingester.common.types import ConsumerInstance, QueueMessage

logger = logging.getLogger(__name__)


def check_topic_present(body: bytes, topic: str) -> None:
    """Raise QueueProxyError unless ``body`` is a JSON list containing ``topic``."""
    try:
        topics = json.loads(body)
    except ValueError as e:
        raise QueueProxyError(f"Error occurred and topic could not be found. {e}", cause=e) from e
    if not isinstance(topics, list) or topic not in topics:
        raise QueueProxyError("Topic was not found", context={"topic": topic})


class QueueProxyClient:
    """Talks to a pool of queue proxy addresses on behalf of one consumer stream."""

    def __init__(self, config: QueueConfig, client: AgeingClient):
        if not config.addresses:
            raise ValueError("At least one queue proxy address must be specified")
        self.addresses = list(config.addresses)
        self.group = config.group
        self.topic = config.topic
        self.offset = config.offset or "largest"
        self.auto_commit_enable = config.auto_commit_enable
        self.host_header = config.queue
        self.authorization_key = config.authorization_key
        self.client = client
        # Advanced before every instance creation, so the first one uses address 0
        self._addr_index = -1

    @property
    def current_address(self) -> str:
        return self.addresses[max(self._addr_index, 0)].rstrip("/")

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        if self.host_header:
            headers["Host"] = self.host_header
        if self.authorization_key:
            headers["Authorization"] = self.authorization_key
        return headers

    async def _do_request(
        self,
        method: str,
        url: str,
        expected_status: int,
        operation: str,
        data: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> bytes:
        """Perform one proxy call and return the response body.

        Raises:
            QueueProxyError: transport failure or unexpected status
        """
        try:
            async with self.client.session.request(
                method, url, data=data, headers=self._headers(headers)
            ) as resp:
                payload = await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            record_queue_proxy_error(operation)
            raise QueueProxyError(
                f"Error executing {operation} request", cause=e, context={"url": url}
            ) from e

        if status >= 500:
            # The backend may have left the pool while our keep-alive connection persists
            self.client.recycle()

        if status != expected_status:
            record_queue_proxy_error(operation)
            log_with_context(
                logger,
                logging.ERROR,
                "Unexpected queue proxy response",
                operation=operation,
                http_method=method,
                http_url=url,
                http_status=status,
            )
            raise QueueProxyError(
                f"Unexpected response status {status}. Expected: {expected_status}",
                status_code=status,
                context={"url": url, "operation": operation},
            )
        return payload

    def _consumer_url(self, instance: ConsumerInstance, suffix: str = "") -> str:
        # The proxy reports its own base URI; keep only its path, on our address
        path = urlsplit(instance.base_uri).path.rstrip("/")
        return f"{self.current_address}{path}{suffix}"

    async def create_consumer_instance(self) -> ConsumerInstance:
        self._addr_index = (self._addr_index + 1) % len(self.addresses)
        address = self.current_address
        body = json.dumps(
            {
                "auto.offset.reset": self.offset,
                "auto.commit.enable": "true" if self.auto_commit_enable else "false",
            }
        )
        payload = await self._do_request(
            "POST",
            f"{address}/consumers/{self.group}",
            200,
            "create_instance",
            data=body,
            headers={"Content-Type": "application/json"},
        )
        try:
            instance = ConsumerInstance.from_response(json.loads(payload))
        except (ValueError, AttributeError) as e:
            raise QueueProxyError("Could not decode consumer instance", cause=e) from e
        if not instance.base_uri:
            raise QueueProxyError("Consumer instance response has no base_uri")

        log_with_context(
            logger,
            logging.INFO,
            "Created consumer instance",
            address=address,
            group=self.group,
            instance_id=instance.instance_id,
            base_uri=instance.base_uri,
        )
        return instance

    async def consume_messages(self, instance: ConsumerInstance) -> list[QueueMessage]:
        payload = await self._do_request(
            "GET",
            self._consumer_url(instance, f"/topics/{self.topic}"),
            200,
            "consume",
            headers={"Accept": "application/json"},
        )
        return decode_records(payload)

    async def commit_offsets(self, instance: ConsumerInstance) -> None:
        await self._do_request("POST", self._consumer_url(instance, "/offsets"), 200, "commit")

    async def destroy_consumer_instance(self, instance: ConsumerInstance) -> None:
        await self._do_request("DELETE", self._consumer_url(instance), 204, "destroy_instance")
        log_with_context(
            logger, logging.INFO, "Destroyed consumer instance", instance_id=instance.instance_id
        )

    async def check_connectivity(self) -> str:
        """
        Probe every address; healthy when at least one lists the topic.

        The REST contract has no group endpoint, so a successful topic listing
        is taken as the group state being obtainable.

        Raises:
            QueueProxyError: every address failed, with each address's reason
        """
        results = await asyncio.gather(
            *(self._check_address(a) for a in self.addresses), return_exceptions=True
        )
        failures = []
        for address, result in zip(self.addresses, results):
            if isinstance(result, Exception):
                failures.append(f"{address}: {result}")
        if len(failures) == len(self.addresses):
            raise QueueProxyError("; ".join(failures))
        return "Connectivity to consumer proxies is OK."

    async def _check_address(self, address: str) -> None:
        try:
            body = await self._do_request(
                "GET",
                f"{address.rstrip('/')}/topics",
                200,
                "list_topics",
                headers={"Accept": "application/json"},
            )
        except QueueProxyError as e:
            raise QueueProxyError(f"Could not connect to proxy: {e}", status_code=e.status_code) from e
        check_topic_present(body, self.topic)
