"""Agent run endpoints.

``POST /agents/{slug}/runs`` starts a run of the agent registered under
``slug`` and streams its events back as server-sent events.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import Field

from agui_server.platform.core.agent import CancellationFlag
from agui_server.platform.core.context import ContextEntry, RunAgentParameters, Tool
from agui_server.platform.core.exceptions import AgentConfigurationError, RunFailedError
from agui_server.platform.core.messages import Message, ProtocolModel
from agui_server.platform.registry import AgentBuilder, AgentRegistry
from agui_server.platform.server.dependencies.agents import get_agent_builder, get_agent_registry
from agui_server.platform.server.streaming import EventStreamSubscriber

logger = logging.getLogger(__name__)

runs_router = APIRouter(prefix="/agents", tags=["agents"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering
}


class RunAgentRequest(ProtocolModel):
    """Request body of a run, in wire (camelCase) or snake_case form.

    Attributes:
        thread_id: Conversation the run belongs to
        run_id: Optional run identifier; generated when absent
        state: Agent state for the run
        messages: Conversation history of the thread
        tools: Tools the caller offers to the model
        context: Caller-supplied context entries
        forwarded_props: Opaque provider-specific passthrough
    """

    thread_id: str = Field(min_length=1)
    run_id: str | None = None
    state: dict[str, Any] = Field(default_factory=dict)
    messages: list[Message] = Field(default_factory=list)
    tools: list[Tool] = Field(default_factory=list)
    context: list[ContextEntry] = Field(default_factory=list)
    forwarded_props: Any = None

    def to_parameters(self) -> RunAgentParameters:
        return RunAgentParameters(
            run_id=self.run_id,
            tools=self.tools,
            context=self.context,
            forwarded_props=self.forwarded_props,
            messages=self.messages,
        )


class AgentSummary(ProtocolModel):
    name: str
    description: str
    slug: str


def _log_run_outcome(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if isinstance(error, RunFailedError):
        # Already delivered to the client as RUN_ERROR
        logger.info("Run %s ended with RUN_ERROR: %s", error.run_id, error)
    elif error is not None:
        logger.error("Run task crashed", exc_info=error)


@runs_router.get("")
async def list_agents(registry: AgentRegistry = Depends(get_agent_registry)) -> list[AgentSummary]:
    """List the agents that can be run."""
    return [
        AgentSummary(name=identity.name, description=identity.description, slug=identity.slug)
        for identity in registry.identities()
    ]


@runs_router.post("/{slug}/runs")
async def run_handler(
    payload: RunAgentRequest,
    builder: AgentBuilder = Depends(get_agent_builder),
):
    """Run an agent and stream the run's events.

    Each SSE frame carries one event. The stream ends after RUN_FINISHED or
    RUN_ERROR. Disconnecting cancels the run cooperatively.

    Args:
        payload: Thread, history, tools and context of the run
        builder: Builder of the agent named by the path (injected)

    Returns:
        StreamingResponse of ``text/event-stream`` frames

    Raises:
        HTTPException: 422 if the agent rejects the run configuration
    """
    sink = EventStreamSubscriber()
    cancellation = CancellationFlag()
    try:
        agent = builder.build(thread_id=payload.thread_id, state=payload.state)
        handle = agent.run_agent(payload.to_parameters(), sink, cancellation)
    except AgentConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    handle.task.add_done_callback(_log_run_outcome)

    async def stream_generator():
        try:
            async for frame in sink.frames():
                yield frame
        finally:
            if not sink.completed and not handle.done():
                logger.info("Client left before run %s ended; cancelling", handle.run_id)
                handle.cancel()

    return StreamingResponse(stream_generator(), media_type=sink.media_type, headers=SSE_HEADERS)
