"""
Cache entry models.

Sandi Metz Principles:
- Single Responsibility: Cache data structure
- Clear naming: Descriptive fields
- Immutable data: Fields are not changed after creation
"""

from pydantic import BaseModel, Field

from agent_gateway.models.agent import NormalizedAgentResponse


class CacheEntry(BaseModel):
    """Cached agent response keyed by request fingerprint."""

    fingerprint: str = Field(..., description="Request fingerprint")
    response: NormalizedAgentResponse = Field(..., description="Cached response")
    created_at: float = Field(..., ge=0, description="Creation time (epoch seconds)")
    expires_at: float = Field(..., ge=0, description="Expiry time (epoch seconds)")

    @classmethod
    def create(
        cls,
        fingerprint: str,
        response: NormalizedAgentResponse,
        ttl_seconds: float,
        now: float,
    ) -> "CacheEntry":
        """
        Create entry expiring ``ttl_seconds`` after ``now``.

        Args:
            fingerprint: Request fingerprint
            response: Response to cache
            ttl_seconds: Time-to-live in seconds
            now: Current time (epoch seconds)

        Returns:
            Cache entry
        """
        return cls(
            fingerprint=fingerprint,
            response=response,
            created_at=now,
            expires_at=now + ttl_seconds,
        )

    def is_expired(self, now: float) -> bool:
        """Check if entry is expired at ``now``."""
        return now >= self.expires_at

    def ttl_remaining(self, now: float) -> float:
        """Seconds left before expiry (0 if expired)."""
        return max(0.0, self.expires_at - now)

    def age_seconds(self, now: float) -> float:
        """Entry age in seconds."""
        return max(0.0, now - self.created_at)
