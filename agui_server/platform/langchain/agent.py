"""LangChain chat model agent.

:class:`LangChainAgent` streams a ``BaseChatModel`` and turns its output into
protocol events. Text deltas become TEXT_MESSAGE_CONTENT events of a single
assistant message. Tool-call chunks become START/ARGS/END triples, which the
run emitter holds back until the message has ended.

Tools passed in the run parameters are declared to the model but executed by
the caller. Tools given to the agent as LangChain ``BaseTool`` objects are
executed in-process: their results are emitted as TOOL_CALL_RESULT events
and fed back to the model, whose follow-up text continues the same message.
"""

import logging
from contextlib import aclosing
from time import monotonic
from typing import Any

from langchain_core.language_models import BaseChatModel, LanguageModelInput
from langchain_core.messages import AIMessage, AIMessageChunk
from langchain_core.messages import BaseMessage as LangChainMessage
from langchain_core.messages import ToolMessage as LangChainToolMessage
from langchain_core.messages.tool import ToolCallChunk
from langchain_core.runnables import Runnable
from langchain_core.tools import BaseTool

from agui_server.platform.core.agent import AgentConfig, LocalAgent
from agui_server.platform.core.context import RunAgentInput
from agui_server.platform.core.lifecycle import RunEmitter
from agui_server.platform.core.messages import (
    AssistantMessage,
    FunctionCall,
    ToolCall,
    ToolMessage,
    generate_id,
)
from agui_server.platform.langchain.mapper import LangChainMessageMapper, parse_tool_arguments
from agui_server.platform.langchain.tools import LangChainToolMapper

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 5

# Raised by BaseChatModel.astream when the provider streams nothing
EMPTY_STREAM_ERROR = "No generation chunks were returned"


def extract_text(content: str | list[Any]) -> str:
    """Extract the text of a message chunk's content."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class ToolCallStream:
    """Turns streamed ``ToolCallChunk`` fragments into tool-call events.

    Fragments of one call share an ``index``; a fragment with a new index or
    a new id starts the next call and ends the previous one. Every call gets
    at least one ARGS event.
    """

    def __init__(self, emitter: RunEmitter, parent_message_id: str) -> None:
        self._emitter = emitter
        self._parent_message_id = parent_message_id
        self._tool_calls: list[ToolCall] = []
        self._current: ToolCall | None = None
        self._current_index: int | None = None
        self._current_has_args = False

    @property
    def tool_calls(self) -> list[ToolCall]:
        return list(self._tool_calls)

    def add(self, chunk: ToolCallChunk) -> None:
        index = chunk.get("index")
        chunk_id = chunk.get("id")
        starts_new_call = (
            self._current is None
            or (index is not None and index != self._current_index)
            or (chunk_id is not None and chunk_id != self._current.id)
        )
        if starts_new_call:
            self.close()
            self._start(chunk_id or generate_id(), chunk.get("name") or "", index)

        args = chunk.get("args") or ""
        if args:
            self._args(args)

    def close(self) -> None:
        """End the call in progress, if any."""
        if self._current is None:
            return
        if not self._current_has_args:
            self._args("{}")
        self._emitter.end_tool_call(self._current.id)
        self._current = None
        self._current_index = None

    def _start(self, tool_call_id: str, name: str, index: int | None) -> None:
        self._emitter.start_tool_call(name, tool_call_id, self._parent_message_id)
        self._current = ToolCall(id=tool_call_id, function=FunctionCall(name=name))
        self._current_index = index
        self._current_has_args = False
        self._tool_calls.append(self._current)

    def _args(self, delta: str) -> None:
        self._emitter.tool_call_args(self._current.id, delta)
        self._current.function.arguments += delta
        self._current_has_args = True


class LangChainAgent(LocalAgent):
    """Agent backed by a LangChain chat model."""

    def __init__(
        self,
        config: AgentConfig,
        model: BaseChatModel,
        tools: list[BaseTool] | None = None,
        message_mapper: LangChainMessageMapper | None = None,
        tool_mapper: LangChainToolMapper | None = None,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ) -> None:
        """Initialize the agent.

        Args:
            config: Agent configuration
            model: Chat model to stream from
            tools: Tools executed in-process when the model calls them
            message_mapper: Optional custom message mapper
            tool_mapper: Optional custom mapper for caller-declared tools
            max_tool_rounds: Upper bound on model calls that follow in-process tool results
        """
        super().__init__(config)
        self._model = model
        self._tools = {tool.name: tool for tool in tools or []}
        self._message_mapper = message_mapper or LangChainMessageMapper()
        self._tool_mapper = tool_mapper or LangChainToolMapper()
        self._max_tool_rounds = max_tool_rounds

    @property
    def model(self) -> BaseChatModel:
        return self._model

    @property
    def tools(self) -> list[BaseTool]:
        return list(self._tools.values())

    def bind_model(self, input: RunAgentInput) -> Runnable[LanguageModelInput, AIMessageChunk]:
        """Bind in-process and caller-declared tools to the model."""
        specs: list[Any] = [
            *self._tools.values(),
            *self._tool_mapper.to_langchain_tools(input.tools),
        ]
        if not specs:
            return self._model
        return self._model.bind_tools(specs)

    async def run(self, input: RunAgentInput, emitter: RunEmitter) -> None:
        emitter.start()

        conversation = self._message_mapper.to_provider_messages(input.messages, self.instructions)
        model = self.bind_model(input)

        message_id = generate_id()
        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        tool_results: list[ToolMessage] = []

        for _ in range(self._max_tool_rounds + 1):
            stream = ToolCallStream(emitter, message_id)
            turn_text = await self._stream_turn(model, conversation, emitter, message_id, stream)
            stream.close()
            text_parts.append(turn_text)
            tool_calls.extend(stream.tool_calls)

            executable = [tc for tc in stream.tool_calls if tc.function.name in self._tools]
            if not executable or emitter.cancelled:
                break

            turn_results = []
            for tool_call in executable:
                result = await self._execute_tool(tool_call)
                emitter.tool_call_result(tool_call.id, result.forwarded_content, message_id=result.id)
                turn_results.append(result)
            tool_results.extend(turn_results)

            if len(executable) < len(stream.tool_calls):
                # Calls of caller-side tools are answered in a later run
                break

            conversation.append(self._to_ai_message(turn_text, stream.tool_calls))
            conversation.extend(self._message_mapper.to_provider_message(r) for r in turn_results)
        else:
            logger.warning(
                "Tool round limit of %d reached for run %s", self._max_tool_rounds, input.run_id
            )

        if emitter.message_id is None:
            # No chunk arrived: open an empty message so the run still brackets one
            emitter.start_message(message_id=message_id)
        emitter.end_message()

        emitter.append_message(
            AssistantMessage(id=message_id, content="".join(text_parts), tool_calls=tool_calls)
        )
        for result in tool_results:
            emitter.append_message(result)

        emitter.finish()

    async def _stream_turn(
        self,
        model: Runnable[LanguageModelInput, AIMessageChunk],
        conversation: list[LangChainMessage],
        emitter: RunEmitter,
        message_id: str,
        stream: ToolCallStream,
    ) -> str:
        """Stream one model response into the open message. Returns its text."""
        parts: list[str] = []
        if emitter.cancelled:
            return ""

        received = 0
        try:
            async with aclosing(model.astream(conversation)) as chunks:
                async for chunk in chunks:
                    received += 1
                    if emitter.cancelled:
                        logger.info("Run %s cancelled while streaming", emitter.run_id)
                        break
                    if emitter.message_id is None:
                        emitter.start_message(message_id=message_id)

                    text = extract_text(chunk.content)
                    if text:
                        emitter.content(text)
                        parts.append(text)
                    for tool_call_chunk in getattr(chunk, "tool_call_chunks", None) or []:
                        stream.add(tool_call_chunk)
        except ValueError as e:
            if received or EMPTY_STREAM_ERROR not in str(e):
                raise
            logger.info("Model returned an empty response for run %s", emitter.run_id)
        return "".join(parts)

    async def _execute_tool(self, tool_call: ToolCall) -> ToolMessage:
        tool = self._tools[tool_call.function.name]
        args = parse_tool_arguments(tool_call.function.arguments)
        start_time = monotonic()
        try:
            output = await tool.ainvoke(args)
        except Exception as e:
            logger.warning(
                "Tool %s failed after %.3fs: %s", tool.name, monotonic() - start_time, e
            )
            return ToolMessage(tool_call_id=tool_call.id, name=tool.name, error=f"Error: {e!s}")

        content = output.content if isinstance(output, LangChainToolMessage) else output
        return ToolMessage(
            tool_call_id=tool_call.id,
            name=tool.name,
            content=content if isinstance(content, str) else str(content),
        )

    @staticmethod
    def _to_ai_message(text: str, tool_calls: list[ToolCall]) -> AIMessage:
        return AIMessage(
            content=text,
            tool_calls=[
                {
                    "name": tc.function.name,
                    "args": parse_tool_arguments(tc.function.arguments),
                    "id": tc.id,
                    "type": "tool_call",
                }
                for tc in tool_calls
            ],
        )
