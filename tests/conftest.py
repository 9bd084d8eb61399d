"""Shared test fixtures.

This module provides doubles used across unit and integration tests:
- RecordingSubscriber, which records every hook call
- StubAgent, a LocalAgent whose run body is supplied by the test
- ScriptedChatModel, a LangChain chat model that streams canned chunks
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from typing import Any

import pytest
from langchain_core.callbacks import AsyncCallbackManagerForLLMRun, CallbackManagerForLLMRun
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk
from langchain_core.messages import BaseMessage as LangChainMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from pydantic import Field

from agui_server.platform.core.agent import AgentConfig, LocalAgent
from agui_server.platform.core.context import RunAgentInput
from agui_server.platform.core.events import BaseEvent
from agui_server.platform.core.lifecycle import RunEmitter
from agui_server.platform.core.messages import BaseMessage
from agui_server.platform.core.subscriber import AgentSubscriber, AgentSubscriberParams

# =============================================================================
# Subscriber
# =============================================================================


class RecordingSubscriber(AgentSubscriber):
    """Records generic events, typed hook calls and lifecycle callbacks."""

    def __init__(self) -> None:
        self.events: list[BaseEvent] = []
        self.typed: list[tuple[str, BaseEvent]] = []
        self.lifecycle: list[str] = []
        self.failures: list[BaseException] = []
        self.new_messages: list[BaseMessage] = []

    @property
    def event_types(self) -> list[str]:
        return [str(event.type) for event in self.events]

    def on_event(self, event: BaseEvent) -> None:
        self.events.append(event)

    def on_run_started(self, event):
        self.typed.append(("on_run_started", event))

    def on_run_error(self, event):
        self.typed.append(("on_run_error", event))

    def on_run_finished(self, event):
        self.typed.append(("on_run_finished", event))

    def on_step_started(self, event):
        self.typed.append(("on_step_started", event))

    def on_step_finished(self, event):
        self.typed.append(("on_step_finished", event))

    def on_text_message_start(self, event):
        self.typed.append(("on_text_message_start", event))

    def on_text_message_content(self, event):
        self.typed.append(("on_text_message_content", event))

    def on_text_message_end(self, event):
        self.typed.append(("on_text_message_end", event))

    def on_tool_call_start(self, event):
        self.typed.append(("on_tool_call_start", event))

    def on_tool_call_args(self, event):
        self.typed.append(("on_tool_call_args", event))

    def on_tool_call_end(self, event):
        self.typed.append(("on_tool_call_end", event))

    def on_tool_call_result(self, event):
        self.typed.append(("on_tool_call_result", event))

    def on_raw(self, event):
        self.typed.append(("on_raw", event))

    def on_custom(self, event):
        self.typed.append(("on_custom", event))

    def on_messages_snapshot(self, event):
        self.typed.append(("on_messages_snapshot", event))

    def on_state_snapshot(self, event):
        self.typed.append(("on_state_snapshot", event))

    def on_state_delta(self, event):
        self.typed.append(("on_state_delta", event))

    def on_run_initialized(self, params: AgentSubscriberParams) -> None:
        self.lifecycle.append("initialized")

    def on_run_failed(self, params: AgentSubscriberParams, error: BaseException) -> None:
        self.lifecycle.append("failed")
        self.failures.append(error)

    def on_run_finalized(self, params: AgentSubscriberParams) -> None:
        self.lifecycle.append("finalized")

    def on_new_message(self, message: BaseMessage) -> None:
        self.new_messages.append(message)

    def on_messages_changed(self, params: AgentSubscriberParams) -> None:
        self.lifecycle.append("messages_changed")


@pytest.fixture
def recorder() -> RecordingSubscriber:
    """Create a fresh recording subscriber."""
    return RecordingSubscriber()


# =============================================================================
# Agents
# =============================================================================

type RunBody = Callable[[RunAgentInput, RunEmitter], Awaitable[None]]


class StubAgent(LocalAgent):
    """LocalAgent whose run body is a test-supplied coroutine function."""

    def __init__(self, config: AgentConfig, body: RunBody) -> None:
        super().__init__(config)
        self._body = body

    async def run(self, input: RunAgentInput, emitter: RunEmitter) -> None:
        await self._body(input, emitter)


@pytest.fixture
def make_agent() -> Callable[..., StubAgent]:
    """Create a factory of stub agents on thread ``thread-1``."""

    def factory(body: RunBody, **config: Any) -> StubAgent:
        config.setdefault("agent_id", "stub-agent")
        config.setdefault("thread_id", "thread-1")
        return StubAgent(AgentConfig(**config), body)

    return factory


# =============================================================================
# LangChain chat model
# =============================================================================


class ScriptedChatModel(BaseChatModel):
    """Chat model that streams one scripted response per call.

    Each entry of ``responses`` is a list of chunks for one model call. An
    exception instance in that list is raised when the stream reaches it.
    Conversations passed to the model are recorded in ``calls``.
    """

    responses: list[list[Any]] = Field(default_factory=list)
    calls: list[list[LangChainMessage]] = Field(default_factory=list)
    bound_tools: list[Any] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self

    def _next_response(self, messages: list[LangChainMessage]) -> list[Any]:
        self.calls.append(list(messages))
        index = len(self.calls) - 1
        return self.responses[index] if index < len(self.responses) else []

    def _generate(
        self,
        messages: list[LangChainMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        text = "".join(
            item.content for item in self._next_response(messages) if isinstance(item, AIMessageChunk)
        )
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=text))])

    def _stream(
        self,
        messages: list[LangChainMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> Iterator[ChatGenerationChunk]:
        for item in self._next_response(messages):
            if isinstance(item, BaseException):
                raise item
            yield ChatGenerationChunk(message=item)

    async def _astream(
        self,
        messages: list[LangChainMessage],
        stop: list[str] | None = None,
        run_manager: AsyncCallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        for item in self._next_response(messages):
            if isinstance(item, BaseException):
                raise item
            yield ChatGenerationChunk(message=item)


@pytest.fixture
def scripted_model() -> Callable[..., ScriptedChatModel]:
    """Create a factory of scripted chat models."""

    def factory(*responses: list[Any]) -> ScriptedChatModel:
        return ScriptedChatModel(responses=list(responses))

    return factory
