"""
API Middleware module.

Contains middleware for request logging.
"""

from agent_gateway.api.middleware.logging import (
    REQUEST_ID_HEADER,
    LoggingConfig,
    RequestLoggingMiddleware,
    default_logging_config,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "LoggingConfig",
    "RequestLoggingMiddleware",
    "default_logging_config",
]
