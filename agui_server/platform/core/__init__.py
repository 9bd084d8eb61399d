"""Agent event protocol core.

This module provides the provider-agnostic building blocks of a run:
- Message and event models
- The event dispatcher
- The run lifecycle state machine and deferred tool-call buffer
- The agent contract, run handles and cancellation
- Subscriber and message-mapping contracts
- Client-side message reconstruction from events
"""

from agui_server.platform.core.agent import AgentConfig, CancellationFlag, LocalAgent, RunHandle
from agui_server.platform.core.buffer import DeferredEventBuffer
from agui_server.platform.core.context import (
    ContextEntry,
    RunAgentInput,
    RunAgentParameters,
    Tool,
)
from agui_server.platform.core.dispatcher import emit_event
from agui_server.platform.core.encoder import EventEncoder
from agui_server.platform.core.events import BaseEvent, Event, EventType, is_terminal
from agui_server.platform.core.exceptions import (
    AgentConfigurationError,
    AgUiError,
    MessageError,
    ProtocolError,
    RunClosedError,
    RunFailedError,
    UnknownEventError,
)
from agui_server.platform.core.lifecycle import RunEmitter, RunState
from agui_server.platform.core.message_factory import MessageCollector, MessageFactory
from agui_server.platform.core.messages import (
    AssistantMessage,
    BaseMessage,
    DeveloperMessage,
    Message,
    Role,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from agui_server.platform.core.subscriber import AgentSubscriber, AgentSubscriberParams

__all__ = [
    "AgentConfig",
    "AgentConfigurationError",
    "AgentSubscriber",
    "AgentSubscriberParams",
    "AgUiError",
    "AssistantMessage",
    "BaseEvent",
    "BaseMessage",
    "CancellationFlag",
    "ContextEntry",
    "DeferredEventBuffer",
    "DeveloperMessage",
    "Event",
    "EventEncoder",
    "EventType",
    "LocalAgent",
    "Message",
    "MessageCollector",
    "MessageError",
    "MessageFactory",
    "ProtocolError",
    "Role",
    "RunAgentInput",
    "RunAgentParameters",
    "RunClosedError",
    "RunEmitter",
    "RunFailedError",
    "RunHandle",
    "RunState",
    "SystemMessage",
    "Tool",
    "ToolCall",
    "ToolMessage",
    "UnknownEventError",
    "UserMessage",
    "emit_event",
    "is_terminal",
]
