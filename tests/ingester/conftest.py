"""
Fixtures for ingester tests.

FakeBackend is a real aiohttp server standing in for the queue proxy and the
native store. It records every request and answers with configurable statuses.
"""

import base64
import json
from dataclasses import dataclass

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from multidict import CIMultiDict

from ingester.common.http_client import AgeingClient

TOPIC = "NativeCmsPublicationEvents"


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: CIMultiDict
    body: bytes


class FakeBackend:
    """Queue proxy and native store endpoints on one server."""

    def __init__(self):
        self.url = ""
        self.requests: list[RecordedRequest] = []
        # operation -> HTTP status to answer with instead of the normal one
        self.status: dict[str, int] = {}
        # consume responses, popped one per call; empty list once exhausted
        self.batches: list[list[dict]] = []
        self.topics = [TOPIC]
        self.instance_count = 0

    def add_batch(self, *framed: str) -> None:
        """Queue one consume response holding the given FTMSG texts."""
        self.batches.append(
            [
                {"key": "", "value": base64.b64encode(m.encode("utf-8")).decode("ascii"), "partition": 0}
                for m in framed
            ]
        )

    @staticmethod
    def decode_envelope(body: bytes) -> tuple[str, str]:
        """Return (key, framed message) from a producer request body."""
        record = json.loads(body)["records"][0]
        key = base64.b64decode(record["key"]).decode("utf-8") if record["key"] else ""
        return key, base64.b64decode(record["value"]).decode("utf-8")

    def requests_for(self, method: str, prefix: str = "") -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path.startswith(prefix)]

    async def _record(self, request: web.Request) -> None:
        self.requests.append(
            RecordedRequest(request.method, request.path, CIMultiDict(request.headers), await request.read())
        )

    def _override(self, operation: str) -> web.Response | None:
        status = self.status.get(operation)
        if status is None:
            return None
        return web.Response(status=status, text=f"{operation} failed")

    async def create_instance(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("create")) is not None:
            return resp
        self.instance_count += 1
        group = request.match_info["group"]
        instance_id = f"instance-{self.instance_count}"
        return web.json_response(
            {
                "instance_id": instance_id,
                "base_uri": f"http://proxy-internal:8082/consumers/{group}/instances/{instance_id}",
            }
        )

    async def consume(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("consume")) is not None:
            return resp
        batch = self.batches.pop(0) if self.batches else []
        return web.json_response(batch)

    async def commit(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("commit")) is not None:
            return resp
        return web.json_response([])

    async def destroy(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("destroy")) is not None:
            return resp
        return web.Response(status=204)

    async def list_topics(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("topics")) is not None:
            return resp
        return web.json_response(self.topics)

    async def produce(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("produce")) is not None:
            return resp
        return web.json_response({"offsets": [{"partition": 0, "offset": 1}]})

    async def write(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("write")) is not None:
            return resp
        return web.Response(status=200)

    async def gtg(self, request: web.Request) -> web.Response:
        await self._record(request)
        if (resp := self._override("gtg")) is not None:
            return resp
        return web.Response(text="OK")

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/consumers/{group}", self.create_instance)
        app.router.add_get("/consumers/{group}/instances/{instance}/topics/{topic}", self.consume)
        app.router.add_post("/consumers/{group}/instances/{instance}/offsets", self.commit)
        app.router.add_delete("/consumers/{group}/instances/{instance}", self.destroy)
        app.router.add_get("/topics", self.list_topics)
        app.router.add_post("/topics/{topic}", self.produce)
        app.router.add_get("/__gtg", self.gtg)
        app.router.add_put("/{collection}/{uuid}", self.write)
        return app


@pytest.fixture
async def backend():
    fake = FakeBackend()
    server = TestServer(fake.create_app(), host="127.0.0.1")
    await server.start_server()
    fake.url = f"http://127.0.0.1:{server.port}"
    yield fake
    await server.close()


@pytest.fixture
async def other_backend():
    fake = FakeBackend()
    server = TestServer(fake.create_app(), host="127.0.0.1")
    await server.start_server()
    fake.url = f"http://127.0.0.1:{server.port}"
    yield fake
    await server.close()


@pytest.fixture
async def http_client():
    client = AgeingClient("test", timeout_seconds=5, max_age_seconds=0, grace_seconds=0)
    yield client
    await client.close()
