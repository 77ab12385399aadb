"""
Core library: Reusable, infrastructure-agnostic components.

Modules:
    logging     - Structured JSON logging with correlation IDs
    errors      - Error classification and exception hierarchy
    utils       - JSON path lookup, serialization, worker ids

Design Principles:
    - No dependencies on the queue proxy or the native store
    - All modules are independently testable
    - Type hints throughout
"""

from .types import ConnectivityChecker, ErrorCategory

__all__ = [
    "ConnectivityChecker",
    "ErrorCategory",
]
