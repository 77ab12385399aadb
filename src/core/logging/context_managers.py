"""Context managers for structured logging."""

from typing import Dict, Optional

from core.logging.context import get_log_context, set_log_context


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(transaction_id=tid):
            # All logs in this block carry the transaction id
            handle(message)
    """

    def __init__(
        self,
        transaction_id: Optional[str] = None,
        stream_id: Optional[str] = None,
        stage: Optional[str] = None,
        worker_id: Optional[str] = None,
    ):
        self.new_context = {
            "transaction_id": transaction_id,
            "stream_id": stream_id,
            "stage": stage,
            "worker_id": worker_id,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        for key, value in self.new_context.items():
            if value is not None:
                set_log_context(**{key: value})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Restore old context
        set_log_context(
            transaction_id=self.old_context.get("transaction_id", ""),
            stream_id=self.old_context.get("stream_id", ""),
            stage=self.old_context.get("stage", ""),
            worker_id=self.old_context.get("worker_id", ""),
        )
        return False
