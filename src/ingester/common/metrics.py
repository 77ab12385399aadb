"""
Prometheus metrics for the native ingester.

Focused on essential metrics:
- Messages consumed, ingested, skipped and dropped
- Native store write and forward outcomes
- Queue proxy operation errors
- Batch processing duration
- Active consumer instances
"""

import logging

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)


# =============================================================================
# Core Metrics
# =============================================================================

messages_consumed_counter = Counter(
    "ingester_messages_consumed_total",
    "Total number of messages consumed from the read queue",
    labelnames=["topic", "consumer_group"],
)

messages_ingested_counter = Counter(
    "ingester_messages_ingested_total",
    "Total number of messages written to the native store",
    labelnames=["collection"],
)

messages_skipped_counter = Counter(
    "ingester_messages_skipped_total",
    "Total messages skipped because no collection is configured for them",
    labelnames=["reason"],
)

messages_dropped_counter = Counter(
    "ingester_messages_dropped_total",
    "Total messages dropped after a processing error",
    labelnames=["error_category"],
)

native_write_failures_counter = Counter(
    "ingester_native_write_failures_total",
    "Total failed writes to the native store",
    labelnames=["collection"],
)

forwarded_messages_counter = Counter(
    "ingester_forwarded_messages_total",
    "Total messages forwarded to the write queue",
    labelnames=["topic", "success"],
)

queue_proxy_errors_counter = Counter(
    "ingester_queue_proxy_errors_total",
    "Total queue proxy call failures by operation",
    labelnames=["operation"],
)

active_consumer_instances_gauge = Gauge(
    "ingester_active_consumer_instances",
    "Number of streams currently holding a consumer instance",
    labelnames=["consumer_group"],
)

batch_processing_duration_seconds = Histogram(
    "ingester_batch_processing_duration_seconds",
    "Time spent handling one consumed batch, commit excluded",
    labelnames=["topic"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


# =============================================================================
# Convenience Functions
# =============================================================================


def record_messages_consumed(topic: str, consumer_group: str, count: int) -> None:
    messages_consumed_counter.labels(topic=topic, consumer_group=consumer_group).inc(count)


def record_ingested(collection: str) -> None:
    messages_ingested_counter.labels(collection=collection).inc()


def record_skipped(reason: str) -> None:
    messages_skipped_counter.labels(reason=reason).inc()


def record_dropped(error_category: str) -> None:
    messages_dropped_counter.labels(error_category=error_category).inc()


def record_write_failure(collection: str) -> None:
    native_write_failures_counter.labels(collection=collection).inc()


def record_forward(topic: str, success: bool = True) -> None:
    forwarded_messages_counter.labels(topic=topic, success="true" if success else "false").inc()


def record_queue_proxy_error(operation: str) -> None:
    queue_proxy_errors_counter.labels(operation=operation).inc()


def update_active_instances(consumer_group: str, delta: int) -> None:
    active_consumer_instances_gauge.labels(consumer_group=consumer_group).inc(delta)


def start_metrics_server(port: int) -> bool:
    """Start the Prometheus exporter; a port of 0 leaves it off."""
    if port <= 0:
        logger.debug("Metrics exporter disabled")
        return False
    start_http_server(port)
    logger.info("Metrics exporter started", extra={"address": f"http://0.0.0.0:{port}/metrics"})
    return True


__all__ = [
    "batch_processing_duration_seconds",
    "record_dropped",
    "record_forward",
    "record_ingested",
    "record_messages_consumed",
    "record_queue_proxy_error",
    "record_skipped",
    "record_write_failure",
    "start_metrics_server",
    "update_active_instances",
]
