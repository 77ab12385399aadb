"""Tests for shutdown signal handling."""

import signal
from unittest.mock import MagicMock, patch

from ingester.common.signals import remove_shutdown_signal_handlers, setup_shutdown_signal_handlers


class TestSetupShutdownSignalHandlers:

    def test_registers_handlers_unix(self):
        callback = MagicMock()
        loop = MagicMock()

        with patch("asyncio.get_running_loop", return_value=loop):
            setup_shutdown_signal_handlers(callback)

        sigs = {c[0][0] for c in loop.add_signal_handler.call_args_list}
        assert sigs == {signal.SIGTERM, signal.SIGINT}
        assert all(c[0][1] is callback for c in loop.add_signal_handler.call_args_list)

    def test_falls_back_on_windows(self):
        callback = MagicMock()
        loop = MagicMock()
        loop.add_signal_handler.side_effect = NotImplementedError

        with patch("asyncio.get_running_loop", return_value=loop), patch("signal.signal") as mock_signal:
            setup_shutdown_signal_handlers(callback)

            handler = mock_signal.call_args_list[0][0][1]
            handler(signal.SIGTERM, None)

        assert {c[0][0] for c in mock_signal.call_args_list} == {signal.SIGTERM, signal.SIGINT}
        loop.call_soon_threadsafe.assert_called_once_with(callback)


class TestRemoveShutdownSignalHandlers:

    def test_removes_handlers(self):
        loop = MagicMock()

        with patch("asyncio.get_running_loop", return_value=loop):
            remove_shutdown_signal_handlers()

        assert loop.remove_signal_handler.call_count == 2

    def test_restores_defaults_on_windows(self):
        loop = MagicMock()
        loop.remove_signal_handler.side_effect = NotImplementedError

        with patch("asyncio.get_running_loop", return_value=loop), patch("signal.signal") as mock_signal:
            remove_shutdown_signal_handlers()

        assert all(c[0][1] is signal.SIG_DFL for c in mock_signal.call_args_list)
