"""
Custom exceptions for the gateway.

Every error surfaced to a caller carries a machine-readable ``kind``
and a human-readable message.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def retry_after(self) -> Optional[float]:
        """Seconds the caller should wait before retrying, if known."""
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error for API responses."""
        data: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.retry_after is not None:
            data["retry_after"] = round(self.retry_after, 3)
        return data


class ValidationError(GatewayError):
    """Raised when a request or argument is invalid."""

    kind = "validation_error"
    status_code = 422


class ConfigurationError(GatewayError):
    """Raised when configuration is invalid."""

    kind = "configuration_error"
    status_code = 500


class RateLimitedError(GatewayError):
    """Raised when a caller exhausted its token bucket."""

    kind = "rate_limited"
    status_code = 429

    def __init__(self, retry_after: float, message: Optional[str] = None):
        super().__init__(
            message or f"Rate limit exceeded. Retry after {retry_after:.2f} seconds"
        )
        self._retry_after = retry_after

    @property
    def retry_after(self) -> Optional[float]:
        return self._retry_after


class UpstreamError(GatewayError):
    """Base class for failures talking to an AI backend."""

    kind = "upstream_error"
    status_code = 502
    retryable = False


class UpstreamUnavailableError(UpstreamError):
    """Raised when the backend cannot be reached or reports an outage."""

    kind = "upstream_unavailable"
    status_code = 503
    retryable = True


class UpstreamTimeoutError(UpstreamError):
    """Raised when a backend call exceeds its timeout."""

    kind = "upstream_timeout"
    status_code = 504
    retryable = True


class UpstreamRateLimitError(UpstreamError):
    """Raised when the backend throttles the gateway."""

    kind = "upstream_rate_limited"
    status_code = 502
    retryable = True

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self._retry_after = retry_after

    @property
    def retry_after(self) -> Optional[float]:
        return self._retry_after


class UpstreamRejectedError(UpstreamError):
    """Raised when the backend rejects the request (not transient)."""

    kind = "upstream_rejected"
    status_code = 502


class ResponseParseError(GatewayError):
    """Raised when a backend payload does not have the expected shape."""

    kind = "response_parse_error"
    status_code = 502

    def __init__(self, detail: str):
        super().__init__(f"Could not parse upstream response: {detail}")
        self.detail = detail


class InternalCoalescingError(GatewayError):
    """Raised when a shared in-flight call ends without a result."""

    kind = "internal_coalescing_error"
    status_code = 500
