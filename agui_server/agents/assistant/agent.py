"""General-purpose assistant agent.

The assistant streams a LiteLLM-served chat model and answers date and time
questions with an in-process tool.
"""

from typing import Any, Self

from langchain_core.language_models import BaseChatModel
from langchain_litellm import ChatLiteLLM

from agui_server.agents.assistant.prompt import build_system_prompt
from agui_server.agents.assistant.tools import assistant_tools
from agui_server.platform.core.agent import AgentConfig
from agui_server.platform.langchain.agent import DEFAULT_MAX_TOOL_ROUNDS, LangChainAgent
from agui_server.platform.registry import AgentIdentity
from agui_server.platform.settings import LitellmSettings, Settings


class AssistantAgentBuilder:
    """Builder for assistant agents.

    The chat model is created once and shared by every agent the builder
    builds; each agent owns its own conversation history.
    """

    SLUG = "assistant"

    def __init__(
        self,
        llm_settings: LitellmSettings,
        instructions: str | None = None,
        model: BaseChatModel | None = None,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ) -> None:
        """Initialize the builder.

        Args:
            llm_settings: Model, endpoint and sampling configuration
            instructions: System prompt override; the built-in prompt when None
            model: Optional pre-configured chat model, used instead of ChatLiteLLM
            max_tool_rounds: Model calls allowed after in-process tool results
        """
        self._instructions = instructions if instructions is not None else build_system_prompt()
        self._max_tool_rounds = max_tool_rounds
        self._model = model or ChatLiteLLM(
            model_name=llm_settings.model,
            api_key=llm_settings.api_key or None,
            api_base=llm_settings.api_base or None,
            temperature=llm_settings.temperature,
            streaming=True,
        )
        self._identity = AgentIdentity(
            name="Assistant",
            description="General-purpose chat assistant",
            slug=self.SLUG,
        )

    @classmethod
    def from_settings(cls, settings: Settings, model: BaseChatModel | None = None) -> Self:
        return cls(settings.litellm, instructions=settings.assistant.instructions, model=model)

    @property
    def identity(self) -> AgentIdentity:
        return self._identity

    @property
    def instructions(self) -> str:
        return self._instructions

    def build(self, thread_id: str, state: dict[str, Any] | None = None) -> LangChainAgent:
        """Build an assistant bound to ``thread_id``.

        Raises:
            AgentConfigurationError: If ``thread_id`` is blank
        """
        config = AgentConfig(
            agent_id=self._identity.slug,
            thread_id=thread_id,
            instructions=self._instructions,
            state=state or {},
            description=self._identity.description,
        )
        return LangChainAgent(
            config,
            self._model,
            tools=assistant_tools(),
            max_tool_rounds=self._max_tool_rounds,
        )
