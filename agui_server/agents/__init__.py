"""Agents served by this service."""

from agui_server.agents.assistant import AssistantAgentBuilder
from agui_server.platform.registry import AgentRegistry
from agui_server.platform.settings import Settings


def build_agent_registry(settings: Settings) -> AgentRegistry:
    """Create the registry of every agent the service serves."""
    return AgentRegistry([AssistantAgentBuilder.from_settings(settings)])


__all__ = ["AssistantAgentBuilder", "build_agent_registry"]
