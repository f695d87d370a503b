"""
Structured logging configuration.

Following Sandi Metz principles:
- Single Responsibility: Logging setup and configuration
- Small functions: Each setup step isolated
- Clear naming: Descriptive function names
"""

import logging
import sys
from typing import Any

import structlog


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines instead of console output
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name)


def log_cache_hit(fingerprint: str, source: str, **kwargs: Any) -> None:
    """
    Log cache hit.

    Args:
        fingerprint: Request fingerprint
        source: Cache backend (memory/redis)
        **kwargs: Additional context
    """
    logger = get_logger("cache")
    logger.info("cache_hit", fingerprint=fingerprint[:16], source=source, **kwargs)


def log_cache_miss(fingerprint: str, **kwargs: Any) -> None:
    """
    Log cache miss.

    Args:
        fingerprint: Request fingerprint
        **kwargs: Additional context
    """
    logger = get_logger("cache")
    logger.info("cache_miss", fingerprint=fingerprint[:16], **kwargs)


def log_agent_call(variant: str, agent: str, latency_ms: float, **kwargs: Any) -> None:
    """
    Log upstream agent call.

    Args:
        variant: Backend variant name
        agent: Agent persona
        latency_ms: Call latency in milliseconds
        **kwargs: Additional context
    """
    logger = get_logger("agents")
    logger.info(
        "agent_call", variant=variant, agent=agent, latency_ms=latency_ms, **kwargs
    )


def log_error(error: Exception, context: str, **kwargs: Any) -> None:
    """
    Log error with context.

    Args:
        error: Exception that occurred
        context: Error context
        **kwargs: Additional context
    """
    logger = get_logger("error")
    logger.error(
        "error_occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context,
        **kwargs
    )
