"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_transaction_id: ContextVar[str] = ContextVar("transaction_id", default="")
_stream_id: ContextVar[str] = ContextVar("stream_id", default="")
_stage_name: ContextVar[str] = ContextVar("stage_name", default="")
_worker_id: ContextVar[str] = ContextVar("worker_id", default="")


def set_log_context(
    transaction_id: Optional[str] = None,
    stream_id: Optional[str] = None,
    stage: Optional[str] = None,
    worker_id: Optional[str] = None,
) -> None:
    if transaction_id is not None:
        _transaction_id.set(transaction_id)
    if stream_id is not None:
        _stream_id.set(stream_id)
    if stage is not None:
        _stage_name.set(stage)
    if worker_id is not None:
        _worker_id.set(worker_id)


def get_log_context() -> Dict[str, str]:
    return {
        "transaction_id": _transaction_id.get(),
        "stream_id": _stream_id.get(),
        "stage": _stage_name.get(),
        "worker_id": _worker_id.get(),
    }


def clear_log_context() -> None:
    _transaction_id.set("")
    _stream_id.set("")
    _stage_name.set("")
    _worker_id.set("")
