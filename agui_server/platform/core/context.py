"""Run context types.

``RunAgentParameters`` is what a caller hands to an agent; ``RunAgentInput``
is the immutable per-run bundle the agent builds from it.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import Field

from agui_server.platform.core.messages import BaseMessage, Message, ProtocolModel


class Tool(ProtocolModel):
    """A tool the model may call.

    Attributes:
        name: Tool name as exposed to the model
        description: Human-readable description
        parameters: JSON schema of the arguments (opaque to the core)
    """

    name: str
    description: str = ""
    parameters: Any = None


class ContextEntry(ProtocolModel):
    """A piece of caller-supplied context."""

    description: str
    value: str


class RunAgentParameters(ProtocolModel):
    """Caller-supplied parameters for a single run.

    Attributes:
        run_id: Optional run identifier; generated when absent
        tools: Tools offered to the model for this run
        context: Context entries for this run
        forwarded_props: Opaque provider-specific passthrough
        messages: Messages to append to the agent history before running
    """

    run_id: str | None = None
    tools: list[Tool] = Field(default_factory=list)
    context: list[ContextEntry] = Field(default_factory=list)
    forwarded_props: Any = None
    messages: list[Message] | None = None


@dataclass(frozen=True)
class RunAgentInput:
    """Immutable bundle describing one run.

    ``messages`` is the agent's own history list, not a copy: messages
    appended during the run are visible to later runs of the same agent.
    """

    thread_id: str
    run_id: str
    state: dict[str, Any]
    messages: list[BaseMessage]
    tools: list[Tool] = field(default_factory=list)
    context: list[ContextEntry] = field(default_factory=list)
    forwarded_props: Any = None
