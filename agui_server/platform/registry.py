"""Agent identities and the registry of agent builders served over HTTP.

An agent instance owns the mutable history of one conversation, so the
server does not share agents between requests. It keeps one builder per
agent slug instead and builds a fresh agent for every run.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from agui_server.platform.core.agent import LocalAgent


@dataclass(frozen=True)
class AgentIdentity:
    """Identity information for an agent.

    Attributes:
        name: Human-readable display name for the agent
        description: Brief description of the agent's capabilities
        slug: URL-safe identifier used in API routes
    """

    name: str
    description: str
    slug: str


class AgentBuilder(Protocol):
    """Builds agents bound to a conversation thread."""

    @property
    def identity(self) -> AgentIdentity: ...

    def build(self, thread_id: str, state: dict[str, Any] | None = None) -> LocalAgent:
        """Build an agent for ``thread_id`` with an empty history."""
        ...


class AgentNotFoundError(KeyError):
    """No builder is registered under the requested slug."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class AgentRegistry:
    """Agent builders keyed by slug, in registration order."""

    def __init__(self, builders: list[AgentBuilder] | None = None) -> None:
        self._builders: dict[str, AgentBuilder] = {}
        for builder in builders or []:
            self.register(builder)

    def register(self, builder: AgentBuilder) -> None:
        """Register ``builder`` under its identity's slug.

        Raises:
            ValueError: If the slug is already taken
        """
        slug = builder.identity.slug
        if slug in self._builders:
            raise ValueError(f"Agent slug collision: '{slug}' is already registered.")
        self._builders[slug] = builder

    def get(self, slug: str) -> AgentBuilder:
        try:
            return self._builders[slug]
        except KeyError:
            raise AgentNotFoundError(
                f"Agent '{slug}' not found. Available: {sorted(self._builders)}"
            ) from None

    def identities(self) -> list[AgentIdentity]:
        return [builder.identity for builder in self._builders.values()]

    def __contains__(self, slug: object) -> bool:
        return slug in self._builders

    def __len__(self) -> int:
        return len(self._builders)
