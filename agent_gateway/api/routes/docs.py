"""
API documentation configuration.

OpenAPI metadata for the AgentGateway API.
"""

# API Tags metadata for OpenAPI documentation
TAGS_METADATA = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring service status.",
    },
    {
        "name": "ai",
        "description": "AI query endpoints. Rate limited per caller, answered from "
        "cache or from one shared upstream call.",
    },
]

API_DESCRIPTION = """
## AgentGateway

Single front door for the marketplace's AI agents.

### Pipeline

1. **Rate limit** - per-caller token bucket (`429` with `Retry-After` when empty)
2. **Cache** - identical requests are answered while the cached response is fresh
3. **Coalescing** - identical concurrent requests share one upstream call
4. **Invoke** - Bedrock Agents (conversational) or Bedrock models (direct),
   retried with backoff on transient failures
5. **Normalize** - every backend answers with the same response shape

### Agents

| Agent | Cache TTL |
|-------|-----------|
| `shopping_assistant` | 15 minutes |
| `pricing_optimizer` | 1 minute |
| `dispute_resolver` | 5 minutes |

### Errors

Every error body carries `error` (machine-readable kind) and `message`.
"""
