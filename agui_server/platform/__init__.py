"""Agent platform infrastructure.

This module provides the infrastructure for serving agents over the agent
event protocol:
- Protocol core (messages, events, dispatcher, run lifecycle)
- LangChain chat model integration
- FastAPI server with server-sent events streaming
- Settings and observability utilities
"""

from agui_server.platform.core import (
    AgentConfig,
    AgentSubscriber,
    CancellationFlag,
    LocalAgent,
    RunAgentInput,
    RunAgentParameters,
    RunEmitter,
    RunHandle,
)
from agui_server.platform.settings import Settings

__all__ = [
    # Agent contract
    "AgentConfig",
    "LocalAgent",
    "RunEmitter",
    "RunHandle",
    "CancellationFlag",
    # Run context
    "RunAgentInput",
    "RunAgentParameters",
    # Consumers
    "AgentSubscriber",
    # Configuration
    "Settings",
]
