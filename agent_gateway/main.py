"""
Main FastAPI application.

Following Sandi Metz:
- Single Responsibility: Application setup and configuration
- Small methods: Each lifecycle stage isolated
- Clear naming: Descriptive function names
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import ConnectionPool
from starlette.middleware.gzip import GZipMiddleware

from agent_gateway import __version__
from agent_gateway.agents.factory import InvokerFactory
from agent_gateway.agents.registry import InvokerRegistry
from agent_gateway.agents.retry import RetryConfig, RetryHandler
from agent_gateway.api.middleware import (
    REQUEST_ID_HEADER,
    RequestLoggingMiddleware,
    default_logging_config,
)
from agent_gateway.api.routes import health, query
from agent_gateway.api.routes.docs import API_DESCRIPTION, TAGS_METADATA
from agent_gateway.api.routes.query import error_response
from agent_gateway.cache.redis_cache import RedisResponseCache
from agent_gateway.cache.response_cache import InMemoryResponseCache, ResponseCache
from agent_gateway.config import AppConfig, config
from agent_gateway.exceptions import GatewayError
from agent_gateway.models.error import ErrorResponse
from agent_gateway.pipeline.coalescer import RequestCoalescer
from agent_gateway.pipeline.rate_limiter import RateLimitConfig, RateLimiter
from agent_gateway.repositories.redis_repository import (
    RedisRepository,
    create_redis_pool,
)
from agent_gateway.services.gateway import AgentGateway
from agent_gateway.services.maintenance import MaintenanceTask
from agent_gateway.utils.logger import get_logger, setup_logging

setup_logging(config.log_level)
logger = get_logger(__name__)


class ApplicationState:
    """
    Manages application-wide state.

    Single Responsibility: Lifecycle management of shared resources.
    """

    def __init__(
        self,
        settings: AppConfig | None = None,
        invokers: Optional[InvokerRegistry] = None,
    ) -> None:
        self.settings = settings or config
        self.redis_pool: Optional[ConnectionPool] = None
        self.cache: Optional[ResponseCache] = None
        self.gateway: Optional[AgentGateway] = None
        self.maintenance: Optional[MaintenanceTask] = None
        self._invokers = invokers

    async def startup(self) -> None:
        """Initialize application resources."""
        settings = self.settings
        logger.info("Starting AgentGateway", env=settings.app_env)
        try:
            self.cache = await self._create_cache()
            self.gateway = AgentGateway(
                rate_limiter=RateLimiter(
                    RateLimitConfig(
                        capacity=settings.rate_limit_capacity,
                        refill_per_second=settings.rate_limit_refill_per_second,
                    )
                ),
                cache=self.cache,
                coalescer=RequestCoalescer(settings.cancel_when_abandoned),
                invokers=self._invokers or InvokerFactory.create_registry(settings),
                retry=RetryHandler(
                    RetryConfig(
                        max_retries=settings.retry_max_retries,
                        initial_delay=settings.retry_initial_delay,
                        max_delay=settings.retry_max_delay,
                    )
                ),
                ttl_policy=settings.cache_ttls,
            )
            self.maintenance = MaintenanceTask(
                self.gateway,
                interval_seconds=settings.maintenance_interval_seconds,
                bucket_idle_seconds=settings.bucket_idle_seconds,
            )
            self.maintenance.start()
            logger.info("AgentGateway started successfully", cache=self.cache.name)
        except Exception as e:
            logger.error("Failed to initialize AgentGateway", error=str(e))
            raise

    async def shutdown(self) -> None:
        """Cleanup application resources."""
        logger.info("Shutting down AgentGateway")
        try:
            if self.maintenance:
                await self.maintenance.stop()
            if self.redis_pool:
                await self.redis_pool.disconnect()
                logger.info("Redis pool closed")
            logger.info("AgentGateway shut down successfully")
        except Exception as e:
            logger.error("Error during shutdown", error=str(e))

    async def _create_cache(self) -> ResponseCache:
        settings = self.settings
        if settings.cache_backend == "redis":
            self.redis_pool = await create_redis_pool(settings)
            logger.info("Redis pool initialized")
            return RedisResponseCache(RedisRepository(self.redis_pool))
        return InMemoryResponseCache(max_entries=settings.cache_max_entries or None)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    state = ApplicationState()
    await state.startup()
    app.state.app_state = state

    yield

    await state.shutdown()


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render gateway errors raised outside the route body."""
    return error_response(exc)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures in the common error shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    body = ErrorResponse(
        error="validation_error",
        message=f"{location}: {message}" if location else message,
    )
    return JSONResponse(
        status_code=422,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def create_application() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=config.app_name,
        description=API_DESCRIPTION,
        version=__version__,
        docs_url="/docs" if config.is_development else None,
        redoc_url="/redoc" if config.is_development else None,
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    # Add middleware (order matters - first added is last executed)

    # GZip compression for responses
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Request logging
    app.add_middleware(
        RequestLoggingMiddleware,
        config=default_logging_config,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(query.router, prefix="/ai", tags=["ai"])

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agent_gateway.main:app",
        host=config.api_host,
        port=config.api_port,
        reload=config.is_development,
    )
