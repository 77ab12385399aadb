"""
Health aggregation and the operational HTTP endpoints.

Endpoints:
- /__health      - Detailed per-check report (JSON, or HTML for browsers). Always 200.
- /__gtg         - Good-to-go: 200 "OK", or 503 with the first failing check's message
- /__build-info  - Version and build metadata
- /__ping        - Liveness, "pong"

Usage:
    health = HealthCheck(consumer, writer, producer, app_config, health_config)
    server = OpsServer(health, port=8080)
    await server.start()
    ...
    await server.stop()
"""

import asyncio
import html
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from importlib import metadata

from aiohttp import web

from config.config import AppConfig, HealthConfig
from core.types import ConnectivityChecker

logger = logging.getLogger(__name__)

HEALTH_SCHEMA_VERSION = 1
DISTRIBUTION_NAME = "native-ingester"


@dataclass(frozen=True)
class Check:
    id: str
    name: str
    business_impact: str
    technical_summary: str
    checker: Callable[[], Awaitable[str]]
    severity: int = 2


@dataclass(frozen=True)
class CheckResult:
    check: Check
    ok: bool
    output: str
    last_updated: datetime

    def to_dict(self, panic_guide: str) -> dict:
        return {
            "id": self.check.id,
            "name": self.check.name,
            "ok": self.ok,
            "severity": self.check.severity,
            "businessImpact": self.check.business_impact,
            "technicalSummary": self.check.technical_summary,
            "panicGuide": panic_guide,
            "checkOutput": self.output,
            "lastUpdated": self.last_updated.isoformat(),
        }


class HealthCheck:
    """Runs the connectivity probes of the consumer, the writer and, when configured, the producer."""

    def __init__(
        self,
        consumer: ConnectivityChecker,
        writer: ConnectivityChecker,
        producer: ConnectivityChecker | None = None,
        app_config: AppConfig | None = None,
        health_config: HealthConfig | None = None,
    ):
        self.app_config = app_config or AppConfig()
        self.health_config = health_config or HealthConfig()
        self.timeout = self.health_config.timeout_seconds
        self.checks = [
            Check(
                id="consumer-queue",
                name="ConsumerQueueReachable",
                business_impact="Native content or metadata will not reach this app, nor will they be stored in native store",
                technical_summary="Consumer message queue is not reachable/healthy",
                checker=consumer.connectivity_check,
            ),
            Check(
                id="native-writer",
                name="NativeWriterReachable",
                business_impact="Content or metadata will not be written in the native store nor will they reach the end of the publishing pipeline",
                technical_summary="Native writer is not reachable/healthy",
                checker=writer.connectivity_check,
            ),
        ]
        if producer is not None:
            self.checks.append(
                Check(
                    id="producer-queue",
                    name="ProducerQueueReachable",
                    business_impact="Content or metadata will not reach the end of the publishing pipeline",
                    technical_summary="Producer message queue is not reachable/healthy",
                    checker=producer.connectivity_check,
                )
            )

    async def _run_check(self, check: Check) -> CheckResult:
        try:
            output = await check.checker()
            ok = True
        except Exception as e:
            output = str(e)
            ok = False
            logger.warning(
                "Health check failed",
                extra={"check": check.id, "check_output": output},
            )
        return CheckResult(check=check, ok=ok, output=output, last_updated=datetime.now(UTC))

    async def run_checks(self) -> list[CheckResult]:
        """Run every check in parallel under one shared timeout."""
        tasks = [asyncio.create_task(self._run_check(c)) for c in self.checks]
        done, pending = await asyncio.wait(tasks, timeout=self.timeout)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        results = []
        for check, task in zip(self.checks, tasks):
            if task in done:
                results.append(task.result())
            else:
                results.append(
                    CheckResult(
                        check=check,
                        ok=False,
                        output=f"Check timed out after {self.timeout:g}s",
                        last_updated=datetime.now(UTC),
                    )
                )
        return results

    async def health(self) -> dict:
        results = await self.run_checks()
        panic_guide = self.health_config.panic_guide
        return {
            "schemaVersion": HEALTH_SCHEMA_VERSION,
            "systemCode": self.app_config.system_code,
            "name": self.app_config.name,
            "description": self.app_config.description,
            "checks": [r.to_dict(panic_guide) for r in results],
            "ok": all(r.ok for r in results),
        }

    async def gtg(self) -> tuple[bool, str]:
        """
        Fail-fast good-to-go evaluation.

        Returns:
            (True, "OK") when every check passes, otherwise (False, message of
            the first check to fail).
        """
        tasks = [asyncio.create_task(c.checker()) for c in self.checks]
        try:
            for next_done in asyncio.as_completed(tasks, timeout=self.timeout):
                try:
                    await next_done
                except asyncio.TimeoutError:
                    return False, f"Checks timed out after {self.timeout:g}s"
                except Exception as e:
                    return False, str(e)
            return True, "OK"
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


def build_info() -> dict:
    try:
        version = metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        version = "0.0.0"
    return {
        "version": os.getenv("BUILD_VERSION", version),
        "repository": os.getenv("BUILD_REPOSITORY", ""),
        "revision": os.getenv("BUILD_REVISION", ""),
        "builder": os.getenv("BUILD_BUILDER", ""),
        "dateTime": os.getenv("BUILD_DATE", ""),
    }


def _prefers_html(accept: str) -> bool:
    html_at = accept.find("text/html")
    if html_at < 0:
        return False
    json_at = accept.find("application/json")
    return json_at < 0 or html_at < json_at


def render_health_html(report: dict) -> str:
    rows = []
    for check in report["checks"]:
        rows.append(
            "<tr><td>{name}</td><td>{status}</td><td>{severity}</td><td>{impact}</td><td>{output}</td></tr>".format(
                name=html.escape(check["name"]),
                status="OK" if check["ok"] else "FAILED",
                severity=check["severity"],
                impact=html.escape(check["businessImpact"]),
                output=html.escape(check["checkOutput"]),
            )
        )
    return (
        "<!DOCTYPE html><html><head><title>{name}</title></head><body>"
        "<h1>{name}</h1><p>{description}</p><p>Status: {status}</p>"
        "<table><tr><th>Check</th><th>Status</th><th>Severity</th><th>Business impact</th><th>Output</th></tr>"
        "{rows}</table></body></html>"
    ).format(
        name=html.escape(report["name"]),
        description=html.escape(report["description"]),
        status="OK" if report["ok"] else "UNHEALTHY",
        rows="".join(rows),
    )


class OpsServer:
    """aiohttp server exposing the operational endpoints."""

    def __init__(self, health: HealthCheck, port: int | None = 8080, host: str = "0.0.0.0"):
        self.health = health
        self.port = port
        self.host = host
        self._enabled = port is not None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._actual_port: int | None = None

    async def handle_health(self, request: web.Request) -> web.Response:
        report = await self.health.health()
        if _prefers_html(request.headers.get("Accept", "")):
            return web.Response(text=render_health_html(report), content_type="text/html")
        return web.json_response(report)

    async def handle_gtg(self, request: web.Request) -> web.Response:
        ok, message = await self.health.gtg()
        headers = {"Cache-Control": "no-cache, no-store, must-revalidate"}
        if ok:
            return web.Response(text="OK", headers=headers)
        return web.Response(status=503, text=message, headers=headers)

    async def handle_build_info(self, request: web.Request) -> web.Response:
        return web.json_response(build_info())

    async def handle_ping(self, request: web.Request) -> web.Response:
        return web.Response(text="pong")

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/__health", self.handle_health)
        app.router.add_get("/__gtg", self.handle_gtg)
        app.router.add_get("/__build-info", self.handle_build_info)
        app.router.add_get("/__ping", self.handle_ping)
        return app

    async def _try_start_on_port(self, port: int) -> bool:
        """Try to start on a specific port; False if the port is in use."""
        try:
            self._runner = web.AppRunner(self.create_app())
            await self._runner.setup()
            self._site = web.TCPSite(self._runner, self.host, port, reuse_address=True)
            await self._site.start()

            # Capture actual port (important when using port=0 for dynamic assignment)
            if self._site._server and self._site._server.sockets:
                self._actual_port = self._site._server.sockets[0].getsockname()[1]
            else:
                self._actual_port = port
            return True
        except OSError as e:
            # Port in use: errno 98 (Linux), 48 (macOS) or 10048 (Windows)
            if e.errno in (48, 98, 10048):
                if self._runner:
                    await self._runner.cleanup()
                self._runner = None
                self._site = None
                return False
            raise

    async def start(self) -> None:
        """
        Start serving. If the configured port is in use, falls back to a
        dynamically assigned port rather than failing the service.
        """
        if not self._enabled or self._runner is not None:
            return

        if await self._try_start_on_port(self.port):
            logger.info("Ops server started", extra={"address": f"http://localhost:{self._actual_port}"})
        elif self.port != 0 and await self._try_start_on_port(0):
            logger.warning(
                f"Port {self.port} in use, falling back to dynamic port assignment",
                extra={"address": f"http://localhost:{self._actual_port}"},
            )
        else:
            logger.warning("Could not start ops server")

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        self._site = None
        self._actual_port = None
        logger.info("Ops server stopped")

    @property
    def actual_port(self) -> int | None:
        """Port the server listens on; useful when started with port=0."""
        return self._actual_port


__all__ = ["Check", "CheckResult", "HealthCheck", "OpsServer", "build_info"]
