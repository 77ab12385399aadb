"""Logging utility functions."""

import logging
from typing import Any

# Reserved LogRecord attribute names that cannot be used in extra dict
_RESERVED_LOG_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "asctime",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (transaction_id, uuid, http_status, ...).
                  Note: exc_info=True is supported and handled specially.

    Example:
        log_with_context(
            logger, logging.INFO, "Built request URL for native writer",
            transaction_id=tid,
            request_url=url,
        )
    """
    exc_info = kwargs.pop("exc_info", None)
    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}
    logger.log(level, msg, exc_info=exc_info, extra=extra)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Automatically extracts error_category from IngesterError subclasses
    and truncates long error messages.

    Example:
        try:
            await writer.write_to_collection(msg, collection)
        except WriteError as e:
            log_exception(logger, e, "Failed to write native content", transaction_id=tid)
    """
    error_category = kwargs.get("error_category")
    if error_category is None and hasattr(exc, "category"):
        cat = exc.category
        kwargs["error_category"] = cat.value if hasattr(cat, "value") else str(cat)

    error_msg = str(exc)
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."
    kwargs["error_message"] = error_msg

    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}
    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=extra)
    else:
        logger.log(level, msg, extra=extra)


def log_monitoring_event(
    logger: logging.Logger,
    event: str,
    transaction_id: str,
    content_uuid: str,
    content_type: str,
    msg: str,
) -> None:
    """Emit a monitoring record picked up by log-based observability."""
    logger.info(
        msg,
        extra={
            "monitoring_event": "true",
            "event": event,
            "transaction_id": transaction_id,
            "uuid": content_uuid,
            "content_type": content_type,
        },
    )
