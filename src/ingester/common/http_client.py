"""
Long-lived aiohttp sessions with periodic connection ageing.

Backends behind the queue proxy and the native store are rotated by the
infrastructure. A pooled keep-alive connection keeps talking to whichever
instance it first reached, so connections are retired on a fixed schedule
and whenever a backend answers with a 5xx.

aiohttp has no "close idle connections" call; retiring means swapping in a
fresh session and closing the old one after a grace period, which lets
requests already in flight on it complete.
"""

import asyncio
import logging

import aiohttp

logger = logging.getLogger(__name__)


def create_session(
    timeout_total: float = 60,
    max_connections_per_host: int = 20,
) -> aiohttp.ClientSession:
    connector = aiohttp.TCPConnector(
        limit_per_host=max_connections_per_host,
        ttl_dns_cache=30,
        enable_cleanup_closed=True,
    )
    timeout = aiohttp.ClientTimeout(total=timeout_total)
    return aiohttp.ClientSession(connector=connector, timeout=timeout)


class AgeingClient:
    """
    Owns the session used for one concern (queue, writer or forwarder).

    Usage:
        client = AgeingClient("native-writer", max_age_seconds=60)
        await client.start()
        async with client.session.put(url, data=body) as resp:
            ...
        await client.close()
    """

    def __init__(
        self,
        name: str,
        timeout_seconds: float = 60,
        max_connections_per_host: int = 20,
        max_age_seconds: float = 60,
        grace_seconds: float | None = None,
    ):
        self.name = name
        self.timeout_seconds = timeout_seconds
        self.max_connections_per_host = max_connections_per_host
        self.max_age_seconds = max_age_seconds
        self.grace_seconds = timeout_seconds if grace_seconds is None else grace_seconds
        self._session: aiohttp.ClientSession | None = None
        self._ticker: asyncio.Task | None = None
        self._retiring: set[asyncio.Task] = set()
        self._closed = False

    @property
    def session(self) -> aiohttp.ClientSession:
        """Current session, created on first use inside the running loop."""
        if self._closed:
            raise RuntimeError(f"HTTP client '{self.name}' is closed")
        if self._session is None or self._session.closed:
            self._session = create_session(self.timeout_seconds, self.max_connections_per_host)
        return self._session

    async def start(self) -> None:
        """Start the ageing ticker; a max age of 0 disables it."""
        if self.max_age_seconds <= 0 or self._ticker is not None:
            return
        logger.info(
            "Starting connection ageing",
            extra={"operation": self.name, "duration_ms": self.max_age_seconds * 1000},
        )
        self._ticker = asyncio.create_task(self._age_forever(), name=f"ageing-{self.name}")

    async def _age_forever(self) -> None:
        while True:
            await asyncio.sleep(self.max_age_seconds)
            logger.debug("Closing idle connections", extra={"operation": self.name})
            self.recycle()

    def recycle(self) -> None:
        """Retire the current session; the next request opens fresh connections."""
        old = self._session
        self._session = None
        if old is None or old.closed:
            return
        task = asyncio.create_task(self._close_later(old))
        self._retiring.add(task)
        task.add_done_callback(self._retiring.discard)

    async def _close_later(self, session: aiohttp.ClientSession) -> None:
        try:
            await asyncio.sleep(self.grace_seconds)
        finally:
            await session.close()

    async def close(self) -> None:
        """Stop ageing and close the current and any retiring sessions."""
        self._closed = True
        if self._ticker is not None:
            self._ticker.cancel()
            await asyncio.gather(self._ticker, return_exceptions=True)
            self._ticker = None

        for task in list(self._retiring):
            task.cancel()
        if self._retiring:
            await asyncio.gather(*self._retiring, return_exceptions=True)

        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
