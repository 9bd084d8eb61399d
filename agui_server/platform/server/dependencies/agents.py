"""Agent dependencies for FastAPI routes."""

from fastapi import HTTPException, Request, status

from agui_server.platform.registry import AgentBuilder, AgentNotFoundError, AgentRegistry


def get_agent_registry(request: Request) -> AgentRegistry:
    return request.app.state.agent_registry


def get_agent_builder(slug: str, request: Request) -> AgentBuilder:
    """Resolve the builder registered under the ``slug`` path parameter.

    Raises:
        HTTPException: 404 if no agent is registered under ``slug``
    """
    try:
        return get_agent_registry(request).get(slug)
    except AgentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
