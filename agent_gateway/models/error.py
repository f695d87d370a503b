"""
Error response models.

Sandi Metz Principles:
- Small classes with clear purpose
- Consistent error handling
- Clear naming conventions
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agent_gateway.exceptions import GatewayError


class ErrorResponse(BaseModel):
    """Standard error response format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    error: str = Field(..., description="Machine-readable error kind")
    message: str = Field(..., description="Error message describing what went wrong")
    retry_after: Optional[float] = Field(
        None, ge=0, description="Seconds to wait before retrying"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Error timestamp (ISO 8601)",
    )

    @classmethod
    def from_exception(cls, error: GatewayError) -> "ErrorResponse":
        """Create error response from a gateway exception."""
        return cls(
            error=error.kind,
            message=error.message,
            retry_after=error.retry_after,
        )

    @classmethod
    def internal_error(cls, detail: Optional[str] = None) -> "ErrorResponse":
        """Create internal server error."""
        return cls(error="internal_error", message=detail or "Internal server error")
