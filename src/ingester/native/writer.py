"""Native store writer: routes content to a collection and PUTs it to the store."""

import asyncio
import logging
from typing import Protocol

import aiohttp

from config.collections import CollectionsConfig
from config.config import WriterConfig
from core.errors import ConnectivityError, WriteError
from core.logging import log_with_context
from ingester.common.http_client import AgeingClient
from ingester.native.body_parser import ContentBodyParser
from ingester.native.message import CONTENT_TYPE_HEADER, NativeMessage

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"
GTG_PATH = "/__gtg"


class ContentWriter(Protocol):
    """What the message handler needs from a native store writer."""

    def get_collection(self, origin_id: str, content_type: str) -> str:
        ...

    async def write_to_collection(self, msg: NativeMessage, collection: str) -> str:
        ...

    async def connectivity_check(self) -> str:
        ...


class NativeWriter:
    """Writes native messages to ``{address}/{collection}/{uuid}``."""

    def __init__(
        self,
        config: WriterConfig,
        collections: CollectionsConfig,
        parser: ContentBodyParser,
        client: AgeingClient,
    ):
        self.address = config.address.rstrip("/")
        self.host_header = config.host_header.strip()
        self.collections = collections
        self.parser = parser
        self.client = client

    def get_collection(self, origin_id: str, content_type: str) -> str:
        return self.collections.get_collection(origin_id, content_type)

    def _headers(self, msg: NativeMessage) -> dict[str, str]:
        headers = {CONTENT_TYPE_HEADER: DEFAULT_CONTENT_TYPE}
        if not msg.content_type:
            log_with_context(
                logger,
                logging.WARNING,
                "Native message has no Content-Type, defaulting to application/json",
                transaction_id=msg.transaction_id,
            )
        headers.update(msg.headers)
        if self.host_header:
            headers["Host"] = self.host_header
        return headers

    async def write_to_collection(self, msg: NativeMessage, collection: str) -> str:
        """
        Write a native message to the store.

        Returns:
            The content uuid the message was written under

        Raises:
            UUIDNotFoundError: no configured path holds a valid uuid; nothing is written
            WriteError: transport failure or a status outside 2xx
        """
        tid = msg.transaction_id
        content_uuid = self.parser.get_uuid(msg.body)
        log_with_context(
            logger,
            logging.INFO,
            "Start processing native publish event",
            transaction_id=tid,
            uuid=content_uuid,
            collection=collection,
        )

        request_url = f"{self.address}/{collection}/{content_uuid}"
        try:
            async with self.client.session.put(
                request_url, data=msg.to_json(), headers=self._headers(msg)
            ) as resp:
                # Drain the body so the connection goes back to the pool
                await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise WriteError(
                "Error calling native writer",
                cause=e,
                context={"uuid": content_uuid, "collection": collection},
            ) from e

        if status < 200 or status >= 300:
            raise WriteError(
                f"Native writer returned non-2xx status {status}",
                status_code=status,
                context={"uuid": content_uuid, "collection": collection},
            )

        log_with_context(
            logger,
            logging.INFO,
            "Successfully finished processing native publish event",
            transaction_id=tid,
            uuid=content_uuid,
            collection=collection,
            http_status=status,
        )
        return content_uuid

    async def connectivity_check(self) -> str:
        headers = {"Host": self.host_header} if self.host_header else None
        try:
            async with self.client.session.get(f"{self.address}{GTG_PATH}", headers=headers) as resp:
                await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ConnectivityError(f"Native writer is not good to go: {e}") from e
        if status != 200:
            raise ConnectivityError(f"Native writer is not good to go: GTG HTTP status code is {status}")
        return "Native writer is good to go."


__all__ = ["ContentWriter", "NativeWriter"]
