"""
Services module.

Contains the gateway orchestration and its background maintenance.
"""

from agent_gateway.services.gateway import AgentGateway, GatewayStats, RequestState
from agent_gateway.services.maintenance import MaintenanceTask

__all__ = ["AgentGateway", "GatewayStats", "MaintenanceTask", "RequestState"]
