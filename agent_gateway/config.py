"""
Application configuration management.

Following Sandi Metz principles:
- Single Responsibility: Configuration loading and validation
- Small class: settings grouped by concern
- Clear naming: Descriptive property names
"""

from typing import Dict, List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """
    Application configuration with validation.

    Loads from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="AgentGateway", description="Application name")
    app_env: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="CORS allowed origins",
    )

    # Bedrock settings
    aws_region: str = Field(default="us-east-1", description="AWS region")
    shopping_agent_id: str = Field(default="", description="Shopping assistant agent")
    shopping_agent_alias_id: str = Field(
        default="TSTALIASID", description="Shopping assistant alias"
    )
    pricing_agent_id: str = Field(default="", description="Pricing optimizer agent")
    pricing_agent_alias_id: str = Field(
        default="TSTALIASID", description="Pricing optimizer alias"
    )
    dispute_agent_id: str = Field(default="", description="Dispute resolver agent")
    dispute_agent_alias_id: str = Field(
        default="TSTALIASID", description="Dispute resolver alias"
    )
    bedrock_model_id: str = Field(
        default="anthropic.claude-3-5-sonnet-20241022-v2:0",
        description="Model used by the direct model backend",
    )
    bedrock_max_tokens: int = Field(default=1024, ge=1, description="Max tokens")
    bedrock_temperature: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Temperature"
    )
    invoke_timeout_seconds: float = Field(
        default=20.0, gt=0, le=120, description="Upstream call timeout"
    )

    # Rate limit settings
    rate_limit_capacity: float = Field(default=20, gt=0, description="Bucket size")
    rate_limit_refill_per_second: float = Field(
        default=0.5, gt=0, description="Tokens refilled per second"
    )

    # Cache settings
    cache_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Response cache backend"
    )
    cache_max_entries: int = Field(
        default=10000, ge=0, description="In-memory cache bound (0 = unbounded)"
    )
    shopping_cache_ttl_seconds: int = Field(default=900, ge=0, description="TTL")
    pricing_cache_ttl_seconds: int = Field(default=60, ge=0, description="TTL")
    dispute_cache_ttl_seconds: int = Field(default=300, ge=0, description="TTL")

    # Retry settings
    retry_max_retries: int = Field(default=2, ge=0, le=10, description="Retries")
    retry_initial_delay: float = Field(default=0.5, ge=0, description="Base delay")
    retry_max_delay: float = Field(default=8.0, ge=0, description="Delay cap")

    # Coalescing settings
    cancel_when_abandoned: bool = Field(
        default=False, description="Cancel a shared call once every waiter left"
    )

    # Redis settings
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    redis_db: int = Field(default=0, ge=0, le=15, description="Redis database")
    redis_password: str = Field(default="", description="Redis password")
    redis_max_connections: int = Field(default=10, ge=1, description="Max connections")

    # Maintenance settings
    maintenance_interval_seconds: float = Field(
        default=60.0, gt=0, description="Interval of the cache/bucket sweep"
    )
    bucket_idle_seconds: float = Field(
        default=600.0, gt=0, description="Idle time before a full bucket is dropped"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def redis_url(self) -> str:
        """Build Redis URL."""
        if self.redis_password:
            return (
                f"redis://:{self.redis_password}@"
                f"{self.redis_host}:{self.redis_port}/{self.redis_db}"
            )
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def cache_ttls(self) -> Dict[str, int]:
        """Cache TTL per agent persona."""
        return {
            "shopping_assistant": self.shopping_cache_ttl_seconds,
            "pricing_optimizer": self.pricing_cache_ttl_seconds,
            "dispute_resolver": self.dispute_cache_ttl_seconds,
        }

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


# Global configuration instance
config = AppConfig()
