"""
Unified exception hierarchy for the native ingester.

Provides typed exceptions with a category so the consumption engine, the
message handler and the health checks can decide how each failure is treated
without string matching.
"""


# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory


class IngesterError(Exception):
    """
    Base exception for all ingester errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for handling decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Configuration Errors (fatal at startup)
# =============================================================================


class ConfigurationError(IngesterError):
    """Malformed or incomplete configuration."""

    category = ErrorCategory.CONFIGURATION


# =============================================================================
# Connectivity Errors (transient)
# =============================================================================


class ConnectivityError(IngesterError):
    """Queue proxy, producer proxy or content store is unreachable or unhealthy."""

    category = ErrorCategory.TRANSIENT


class QueueProxyError(ConnectivityError):
    """Unexpected response or transport failure talking to the queue proxy."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status_code = status_code


# =============================================================================
# Parse Errors (permanent, per message)
# =============================================================================


class ParseError(IngesterError):
    """Inbound message can never be turned into a write request."""

    category = ErrorCategory.PERMANENT


class InvalidBodyError(ParseError):
    """Message body is not a JSON object."""

    pass


class MissingTimestampError(ParseError):
    """Publish event does not carry a Message-Timestamp header."""

    def __init__(self, message: str = "Publish event does not contain timestamp", **kwargs):
        super().__init__(message, **kwargs)


class UUIDNotFoundError(ParseError):
    """None of the configured JSON paths holds a valid UUID."""

    def __init__(self, message: str = "UUID not found", **kwargs):
        super().__init__(message, **kwargs)


# =============================================================================
# Routing Skips (expected, not an error condition)
# =============================================================================


class RoutingSkip(IngesterError):
    """Content is outside the routing whitelist and is skipped on purpose."""

    category = ErrorCategory.SKIP


class OriginNotFoundError(RoutingSkip):
    """No rules are configured for the origin system."""

    def __init__(self, origin_id: str):
        super().__init__("Origin system not found", context={"origin_system_id": origin_id})
        self.origin_id = origin_id


class NoRuleMatchedError(RoutingSkip):
    """The origin is configured but none of its content type rules match."""

    def __init__(self, origin_id: str, content_type: str):
        super().__init__(
            "Origin system and content type not configured",
            context={"origin_system_id": origin_id, "content_type": content_type},
        )
        self.origin_id = origin_id
        self.content_type = content_type


# =============================================================================
# Delivery Errors
# =============================================================================


class WriteError(IngesterError):
    """Native store rejected the write (non-2xx) or could not be reached."""

    category = ErrorCategory.TRANSIENT

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status_code = status_code


class ForwardError(IngesterError):
    """Publishing to the secondary queue failed after a successful write."""

    category = ErrorCategory.TRANSIENT

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status_code = status_code
