"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- IngesterError hierarchy for typed exceptions
"""

from core.errors.exceptions import (
    ConfigurationError,
    ConnectivityError,
    # Enums
    ErrorCategory,
    ForwardError,
    # Base classes
    IngesterError,
    InvalidBodyError,
    MissingTimestampError,
    NoRuleMatchedError,
    OriginNotFoundError,
    ParseError,
    QueueProxyError,
    RoutingSkip,
    UUIDNotFoundError,
    WriteError,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "IngesterError",
    "ConfigurationError",
    "ConnectivityError",
    "ParseError",
    "RoutingSkip",
    # Concrete errors
    "QueueProxyError",
    "InvalidBodyError",
    "MissingTimestampError",
    "UUIDNotFoundError",
    "OriginNotFoundError",
    "NoRuleMatchedError",
    "WriteError",
    "ForwardError",
    # Classification utilities
]
