"""Tests for logging utility functions."""

import logging

from core.errors import WriteError
from core.logging import log_exception, log_monitoring_event, log_with_context

LOGGER_NAME = "ingester.test.utilities"


class TestLogWithContext:

    def test_passes_fields_as_extra(self, caplog):
        logger = logging.getLogger(LOGGER_NAME)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log_with_context(logger, logging.INFO, "Created consumer instance", instance_id="abc", topic="t")

        record = caplog.records[-1]
        assert record.message == "Created consumer instance"
        assert record.instance_id == "abc"
        assert record.topic == "t"

    def test_reserved_keys_are_dropped(self, caplog):
        logger = logging.getLogger(LOGGER_NAME)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log_with_context(logger, logging.INFO, "hello", module="mine", collection="methode")

        record = caplog.records[-1]
        assert record.collection == "methode"
        assert record.module != "mine"


class TestLogException:

    def test_adds_category_and_message(self, caplog):
        logger = logging.getLogger(LOGGER_NAME)
        exc = WriteError("Native writer returned non-2xx status 500", status_code=500)
        with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
            log_exception(logger, exc, "Failed to write native content", include_traceback=False)

        record = caplog.records[-1]
        assert record.error_category == "transient"
        assert record.error_message == "Native writer returned non-2xx status 500"
        assert record.exc_info is None

    def test_truncates_long_messages(self, caplog):
        logger = logging.getLogger(LOGGER_NAME)
        with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
            log_exception(logger, ValueError("x" * 600), "boom")

        record = caplog.records[-1]
        assert len(record.error_message) == 503
        assert record.exc_info is not None

    def test_plain_exceptions_have_no_category(self, caplog):
        logger = logging.getLogger(LOGGER_NAME)
        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            log_exception(logger, ValueError("bad"), "warned", level=logging.WARNING)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert not hasattr(record, "error_category")


class TestLogMonitoringEvent:

    def test_emits_monitoring_fields(self, caplog):
        logger = logging.getLogger(LOGGER_NAME)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log_monitoring_event(
                logger,
                "Ingest",
                "tid_1",
                "5e0ad5e5-c3d4-387d-9875-ec15501808e5",
                "application/json",
                "Successfully ingested",
            )

        record = caplog.records[-1]
        assert record.message == "Successfully ingested"
        assert record.monitoring_event == "true"
        assert record.event == "Ingest"
        assert record.transaction_id == "tid_1"
        assert record.uuid == "5e0ad5e5-c3d4-387d-9875-ec15501808e5"
        assert record.content_type == "application/json"
