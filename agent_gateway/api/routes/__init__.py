"""
API Routes module.

Contains all API endpoint routers.
"""

from agent_gateway.api.routes import health, query

__all__ = ["health", "query"]
