"""Cross-platform signal handler setup for graceful shutdown."""

import asyncio
import logging
import signal
from collections.abc import Callable

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def setup_shutdown_signal_handlers(callback: Callable[[], None]) -> None:
    """Register SIGTERM/SIGINT handlers that invoke callback on signal.

    On Unix, uses the running loop's add_signal_handler(). On Windows,
    falls back to signal.signal() since add_signal_handler() is not supported.
    """
    loop = asyncio.get_running_loop()
    try:
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, callback)
    except NotImplementedError:
        def _handler(signum, frame):
            logger.info("Received signal %s, initiating shutdown", signum)
            loop.call_soon_threadsafe(callback)

        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, _handler)


def remove_shutdown_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    try:
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
    except NotImplementedError:
        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, signal.SIG_DFL)
