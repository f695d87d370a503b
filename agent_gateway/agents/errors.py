"""
Mapping of AWS client failures onto the gateway error taxonomy.

Sandi Metz Principles:
- Single Responsibility: Classify upstream failures
- Small functions: One lookup per error family
"""

from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    NoCredentialsError,
    NoRegionError,
    ParamValidationError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from agent_gateway.exceptions import (
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamRejectedError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)

RATE_LIMIT_CODES = {"ThrottlingException", "TooManyRequestsException"}

TIMEOUT_CODES = {"ModelTimeoutException", "RequestTimeout"}

UNAVAILABLE_CODES = {
    "ServiceUnavailableException",
    "InternalServerException",
    "ModelNotReadyException",
    "ModelStreamErrorException",
    "DependencyFailedException",
    "BadGatewayException",
}

UNAVAILABLE_STATUS_CODES = {500, 502, 503}

# Client-side faults that no retry can fix
REJECTED_ERRORS = (
    NoCredentialsError,
    PartialCredentialsError,
    NoRegionError,
    ParamValidationError,
)


def map_client_error(error: ClientError, context: str) -> UpstreamError:
    """
    Classify a botocore ``ClientError``.

    Args:
        error: Error raised by the AWS client
        context: Which call failed

    Returns:
        Matching gateway error
    """
    code = error.response.get("Error", {}).get("Code", "")
    metadata = error.response.get("ResponseMetadata", {})
    status = metadata.get("HTTPStatusCode", 0)
    message = f"{context}: {code or 'error'} - {error}"

    if code in RATE_LIMIT_CODES or status == 429:
        return UpstreamRateLimitError(message, retry_after=_retry_after(metadata))
    if code in TIMEOUT_CODES or status == 504:
        return UpstreamTimeoutError(message)
    if code in UNAVAILABLE_CODES or status in UNAVAILABLE_STATUS_CODES:
        return UpstreamUnavailableError(message)
    return UpstreamRejectedError(message)


def map_botocore_error(error: BotoCoreError, context: str) -> UpstreamError:
    """
    Classify a botocore transport error.

    Args:
        error: Transport-level error
        context: Which call failed

    Returns:
        Matching gateway error
    """
    message = f"{context}: {type(error).__name__} - {error}"
    if isinstance(error, (ReadTimeoutError, ConnectTimeoutError)):
        return UpstreamTimeoutError(message)
    if isinstance(error, REJECTED_ERRORS):
        return UpstreamRejectedError(message)
    return UpstreamUnavailableError(message)


def _retry_after(metadata: dict) -> Optional[float]:
    """Read the server ``retry-after`` hint in seconds, if any."""
    value = metadata.get("HTTPHeaders", {}).get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None
