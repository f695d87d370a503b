"""
AI agent gateway service.

Every request runs the same pipeline:
rate check -> cache lookup -> coalesced upstream call with retry -> cache store

Sandi Metz Principles:
- Single Responsibility: Request orchestration
- Small methods: Each pipeline stage in its own method
- Dependency Injection: Limiter, cache, coalescer, invokers and retry injected
"""

import time
import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, Mapping, Optional

from agent_gateway.agents.base import BaseAgentInvoker
from agent_gateway.agents.registry import InvokerRegistry
from agent_gateway.agents.retry import RetryHandler
from agent_gateway.cache.response_cache import ResponseCache
from agent_gateway.exceptions import GatewayError, RateLimitedError
from agent_gateway.models.agent import AgentPersona, NormalizedAgentResponse
from agent_gateway.models.cache_entry import CacheEntry
from agent_gateway.models.query import AgentQuery
from agent_gateway.models.response import GatewayResult
from agent_gateway.pipeline.coalescer import RequestCoalescer
from agent_gateway.pipeline.rate_limiter import RateLimiter
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class RequestState(str, Enum):
    """Pipeline stages a request passes through."""

    RECEIVED = "received"
    RATE_CHECKED = "rate_checked"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    INVOKING = "invoking"
    NORMALIZED = "normalized"
    CACHED = "cached"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GatewayStats:
    """Running request counters."""

    requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    coalesced: int = 0
    upstream_calls: int = 0
    retries: int = 0
    rate_limited: int = 0
    failures: int = 0

    @property
    def hit_rate(self) -> float:
        """Cache hit rate over cache lookups."""
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return 0.0
        return self.cache_hits / lookups

    def to_dict(self) -> Dict[str, float]:
        data: Dict[str, float] = asdict(self)
        data["hit_rate"] = round(self.hit_rate, 4)
        return data


@dataclass
class ProducerOutcome:
    """Result of the shared upstream call."""

    response: NormalizedAgentResponse
    attempts: int
    from_cache: bool = False


class AgentGateway:
    """
    Front door for every AI call the marketplace makes.

    Identical concurrent requests share one upstream call, identical
    later requests are answered from cache while fresh.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: Optional[ResponseCache],
        coalescer: RequestCoalescer,
        invokers: InvokerRegistry,
        retry: RetryHandler,
        ttl_policy: Optional[Mapping[str, float]] = None,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize gateway.

        Args:
            rate_limiter: Per-caller token buckets
            cache: Response cache (None disables caching)
            coalescer: In-flight request sharing
            invokers: Invoker per backend variant
            retry: Retry policy for upstream calls
            ttl_policy: Cache TTL in seconds keyed by persona value
            default_ttl: TTL for personas missing from the policy
            clock: Clock for latency measurement
        """
        self._limiter = rate_limiter
        self._cache = cache
        self._coalescer = coalescer
        self._invokers = invokers
        self._retry = retry
        self._ttl_policy = dict(ttl_policy or {})
        self._default_ttl = default_ttl
        self._clock = clock
        self._stats = GatewayStats()

    @property
    def stats(self) -> GatewayStats:
        """Get request counters."""
        return self._stats

    @property
    def cache(self) -> Optional[ResponseCache]:
        """Get response cache."""
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        """Get rate limiter."""
        return self._limiter

    @property
    def coalescer(self) -> RequestCoalescer:
        """Get request coalescer."""
        return self._coalescer

    def ttl_for(self, agent: AgentPersona) -> float:
        """Cache TTL for a persona."""
        return self._ttl_policy.get(agent.value, self._default_ttl)

    async def handle(self, request: AgentQuery, cost: int = 1) -> GatewayResult:
        """
        Process one AI request.

        Args:
            request: Validated query
            cost: Tokens charged against the caller's bucket

        Returns:
            Gateway result

        Raises:
            RateLimitedError: Caller exceeded its budget
            GatewayError: Upstream, parse or configuration failure
        """
        start = self._clock()
        request_id = uuid.uuid4().hex[:12]
        self._stats.requests += 1
        self._transition(request_id, RequestState.RECEIVED, caller_id=request.caller_id)

        await self._check_rate(request_id, request, cost)

        fingerprint = request.fingerprint()
        if request.use_cache:
            entry = await self._lookup(fingerprint)
            if entry is not None:
                self._stats.cache_hits += 1
                self._transition(request_id, RequestState.CACHE_HIT)
                return self._result(
                    self._for_caller(entry.response, request), start, cache_hit=True
                )
            self._stats.cache_misses += 1
            self._transition(request_id, RequestState.CACHE_MISS)

        try:
            invoker = self._invokers.get(request.backend_variant)
            outcome, joined = await self._coalescer.run(
                self._coalescing_key(request, fingerprint),
                lambda: self._produce(request_id, request, fingerprint, invoker),
            )
        except GatewayError as e:
            self._fail(request_id, e.kind)
            raise
        except Exception:
            self._fail(request_id, "internal_error")
            raise

        if joined:
            self._stats.coalesced += 1

        response = outcome.response
        if joined or outcome.from_cache:
            response = self._for_caller(response, request)

        self._transition(request_id, RequestState.DONE, coalesced=joined)
        return self._result(
            response,
            start,
            cache_hit=outcome.from_cache,
            coalesced=joined,
            attempts=outcome.attempts,
        )

    async def invalidate(self, request: AgentQuery) -> bool:
        """
        Drop the cached response for a request.

        Args:
            request: Query identifying the entry

        Returns:
            True if an entry was removed
        """
        if self._cache is None:
            return False
        removed = await self._cache.invalidate(request.fingerprint())
        logger.info("Cache invalidated", agent=request.agent.value, removed=removed)
        return removed

    async def _check_rate(self, request_id: str, request: AgentQuery, cost: int) -> None:
        decision = await self._limiter.check_and_consume(request.caller_id, cost)
        if not decision.allowed:
            self._stats.rate_limited += 1
            self._transition(request_id, RequestState.FAILED, kind="rate_limited")
            raise RateLimitedError(decision.retry_after)
        self._transition(request_id, RequestState.RATE_CHECKED)

    async def _produce(
        self,
        request_id: str,
        request: AgentQuery,
        fingerprint: str,
        invoker: BaseAgentInvoker,
    ) -> ProducerOutcome:
        """
        Shared upstream call for one fingerprint.

        Runs once per coalescing window; the result is stored before the
        in-flight entry is released.
        """
        if request.use_cache:
            # A producer that finished just before this one may have stored it
            entry = await self._lookup(fingerprint)
            if entry is not None:
                return ProducerOutcome(entry.response, attempts=0, from_cache=True)

        self._transition(request_id, RequestState.INVOKING, backend=invoker.get_name())

        async def attempt() -> NormalizedAgentResponse:
            self._stats.upstream_calls += 1
            return await invoker.invoke(request)

        response, attempts = await self._retry.execute(attempt, self._on_retry)
        self._transition(request_id, RequestState.NORMALIZED, attempts=attempts)

        if request.use_cache:
            await self._store(fingerprint, request.agent, response)
            self._transition(request_id, RequestState.CACHED)

        return ProducerOutcome(response, attempts=attempts)

    async def _lookup(self, fingerprint: str) -> Optional[CacheEntry]:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(fingerprint)
        except Exception as e:
            logger.error("Cache lookup failed", error=str(e))
            return None

    async def _store(
        self, fingerprint: str, agent: AgentPersona, response: NormalizedAgentResponse
    ) -> None:
        ttl = self.ttl_for(agent)
        if self._cache is None or ttl <= 0:
            return
        try:
            await self._cache.put(fingerprint, self._shareable(response), ttl)
        except Exception as e:
            logger.error("Cache store failed", error=str(e))

    def _fail(self, request_id: str, kind: str) -> None:
        self._stats.failures += 1
        self._transition(request_id, RequestState.FAILED, kind=kind)

    def _on_retry(self, attempt: int, error: Exception, delay: float) -> None:
        self._stats.retries += 1

    def _result(
        self,
        response: NormalizedAgentResponse,
        start: float,
        cache_hit: bool,
        coalesced: bool = False,
        attempts: int = 0,
    ) -> GatewayResult:
        latency_ms = max(0.0, (self._clock() - start) * 1000)
        return GatewayResult(
            normalized_response=response,
            cache_hit=cache_hit,
            coalesced=coalesced,
            attempts=attempts,
            latency_ms=round(latency_ms, 2),
        )

    @staticmethod
    def _coalescing_key(request: AgentQuery, fingerprint: str) -> str:
        # Cache-bypassing requests never join a producer that reads the cache
        return fingerprint if request.use_cache else f"{fingerprint}:nocache"

    @staticmethod
    def _shareable(response: NormalizedAgentResponse) -> NormalizedAgentResponse:
        """
        Copy of a response safe to hand to callers that did not produce it.

        A session id names one caller's conversation, so it is dropped.
        """
        if response.session_id is None:
            return response
        raw = {k: v for k, v in response.raw.items() if k != "sessionId"}
        return response.model_copy(update={"session_id": None, "raw": raw})

    @classmethod
    def _for_caller(
        cls, response: NormalizedAgentResponse, request: AgentQuery
    ) -> NormalizedAgentResponse:
        """Shared response as seen by the caller that asked for it."""
        if request.is_conversational and request.session_id:
            return response.model_copy(update={"session_id": request.session_id})
        return cls._shareable(response)

    @staticmethod
    def _transition(request_id: str, state: RequestState, **kwargs) -> None:
        logger.debug("Request state", request_id=request_id, state=state.value, **kwargs)
