"""
Core types and protocols used across modules.

This module provides base types, enums, and protocol definitions that are
shared by the ingester packages to keep error handling and health probing
consistent.
"""

from enum import Enum
from typing import Protocol


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Infrastructure failures that may succeed later
                   (e.g., proxy or store unreachable, 5xx responses)
        PERMANENT: Per-message failures that will never succeed
                   (e.g., non-JSON body, missing UUID or timestamp)
        SKIP: Content outside the routing whitelist, dropped on purpose
        CONFIGURATION: Startup configuration problems, fatal to the process
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    SKIP = "skip"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ConnectivityChecker(Protocol):
    """
    Protocol for components exposing a connectivity probe.

    Implementations return a human-readable success message, or raise
    ConnectivityError carrying a message suitable for display.
    """

    async def connectivity_check(self) -> str:
        ...


__all__ = [
    "ErrorCategory",
    "ConnectivityChecker",
]
