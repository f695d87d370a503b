"""
API Request Logging Middleware.

Logs every request with its outcome and latency, and tags the response
with a request id.

Sandi Metz Principles:
- Single Responsibility: Request/response logging
- Non-intrusive: Doesn't modify request/response bodies
- Configurable: Excluded paths and slow threshold
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    enabled: bool = True
    log_headers: bool = False
    excluded_paths: List[str] = field(
        default_factory=lambda: ["/health", "/healthz", "/ready", "/live"]
    )
    slow_request_threshold_ms: float = 5000.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for request/response logging.

    Reuses a caller-supplied ``X-Request-ID`` so calls can be traced
    across services.
    """

    def __init__(self, app, config: Optional[LoggingConfig] = None):
        """
        Initialize middleware.

        Args:
            app: FastAPI application
            config: Logging configuration
        """
        super().__init__(app)
        self._config = config or LoggingConfig()

    @staticmethod
    def _request_id(request: Request) -> str:
        incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if incoming and len(incoming) <= 64:
            return incoming
        return uuid.uuid4().hex[:12]

    def _should_log(self, path: str) -> bool:
        """Check if path should be logged."""
        if not self._config.enabled:
            return False
        return path not in self._config.excluded_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request with logging.

        Args:
            request: Incoming request
            call_next: Next middleware/handler

        Returns:
            Response
        """
        request_id = self._request_id(request)

        if not self._should_log(request.url.path):
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        start_time = time.perf_counter()
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "unknown",
        }
        if self._config.log_headers:
            log_data["headers"] = dict(request.headers)

        logger.info("Request started", **log_data)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                duration_ms=self._elapsed_ms(start_time),
                error=str(e),
            )
            raise

        duration_ms = self._elapsed_ms(start_time)
        response_log = {
            "request_id": request_id,
            "status": response.status_code,
            "duration_ms": duration_ms,
        }

        if duration_ms > self._config.slow_request_threshold_ms:
            logger.warning("Slow request detected", **response_log)
        elif response.status_code >= 500:
            logger.error("Request completed with error", **response_log)
        else:
            logger.info("Request completed", **response_log)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * 1000, 2)


# Default configuration
default_logging_config = LoggingConfig()
