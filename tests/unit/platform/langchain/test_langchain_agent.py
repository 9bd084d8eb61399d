"""Unit tests for LangChainAgent.

The agent is driven by a scripted chat model; each test checks the exact
event sequence a subscriber observes and the history left behind.
"""

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk, SystemMessage, ToolMessage
from langchain_core.messages.tool import tool_call_chunk
from langchain_core.tools import tool

from agui_server.platform.core.agent import AgentConfig, CancellationFlag
from agui_server.platform.core.context import RunAgentParameters, Tool
from agui_server.platform.core.exceptions import RunFailedError
from agui_server.platform.core.lifecycle import RunEmitter
from agui_server.platform.core.messages import AssistantMessage, ToolMessage as ProtocolToolMessage
from agui_server.platform.core.messages import UserMessage
from agui_server.platform.langchain.agent import LangChainAgent, ToolCallStream, extract_text


@tool
def lookup(q: str) -> str:
    """Look up the answer to a query."""
    return f"answer for {q}"


@tool
def broken(q: str) -> str:
    """Always fails."""
    raise ValueError("backend offline")


def text(content: str) -> AIMessageChunk:
    return AIMessageChunk(content=content)


def tool_chunk(name: str | None, args: str, id: str | None, index: int = 0) -> AIMessageChunk:
    return AIMessageChunk(content="", tool_call_chunks=[tool_call_chunk(name=name, args=args, id=id, index=index)])


def make_langchain_agent(model, **kwargs) -> LangChainAgent:
    instructions = kwargs.pop("instructions", "")
    return LangChainAgent(
        AgentConfig(agent_id="assistant", thread_id="thread-1", instructions=instructions), model, **kwargs
    )


def hi(content: str = "hi") -> RunAgentParameters:
    return RunAgentParameters(messages=[UserMessage(id="u1", content=content)])


class TestTextReplies:
    """Tests for plain text streaming."""

    async def test_single_chunk_reply(self, scripted_model, recorder):
        """A one-chunk reply produces one CONTENT between START and END."""
        agent = make_langchain_agent(scripted_model([text("hi there")]))

        await agent.run_agent(hi(), recorder)

        assert recorder.event_types == [
            "RUN_STARTED",
            "TEXT_MESSAGE_START",
            "TEXT_MESSAGE_CONTENT",
            "TEXT_MESSAGE_END",
            "RUN_FINISHED",
        ]
        assert recorder.events[2].delta == "hi there"

    async def test_one_content_per_non_empty_delta(self, scripted_model, recorder):
        """Empty deltas are skipped."""
        agent = make_langchain_agent(scripted_model([text("Hel"), text(""), text("lo")]))

        await agent.run_agent(hi(), recorder)

        deltas = [e.delta for e in recorder.events if e.type == "TEXT_MESSAGE_CONTENT"]
        assert deltas == ["Hel", "lo"]

    async def test_history_updated(self, scripted_model, recorder):
        """The reply is appended to the history under the streamed message id."""
        agent = make_langchain_agent(scripted_model([text("Hel"), text("lo")]))

        await agent.run_agent(hi(), recorder)

        reply = agent.messages[-1]
        assert isinstance(reply, AssistantMessage)
        assert reply.content == "Hello"
        assert reply.id == recorder.events[1].message_id
        assert recorder.new_messages == [reply]

    async def test_instructions_prepended(self, scripted_model, recorder):
        """Instructions reach the model as the first, system message."""
        model = scripted_model([text("ok")])
        agent = make_langchain_agent(model, instructions="You are terse.")

        await agent.run_agent(hi("question"), recorder)

        conversation = model.calls[0]
        assert isinstance(conversation[0], SystemMessage)
        assert conversation[0].content == "You are terse."
        assert conversation[1].content == "question"
        assert conversation[1].id == "u1"

    async def test_empty_stream_still_brackets_a_message(self, scripted_model, recorder):
        """A model that streams nothing still yields START and END."""
        agent = make_langchain_agent(scripted_model([]))

        await agent.run_agent(hi(), recorder)

        assert "TEXT_MESSAGE_CONTENT" not in recorder.event_types
        assert recorder.event_types[-3:] == ["TEXT_MESSAGE_START", "TEXT_MESSAGE_END", "RUN_FINISHED"]
        assert "RUN_ERROR" not in recorder.event_types
        assert agent.messages[-1].content == ""

    async def test_empty_follow_up_after_tool_round(self, scripted_model, recorder):
        """An empty reply after a tool result finishes the run normally."""
        model = scripted_model([tool_chunk("lookup", '{"q": "x"}', "call-1")], [])
        agent = make_langchain_agent(model, tools=[lookup])

        await agent.run_agent(hi(), recorder)

        assert recorder.event_types[-1] == "RUN_FINISHED"
        assert len(model.calls) == 2

    async def test_history_carries_over_between_runs(self, scripted_model, recorder):
        """A second run sees the first run's messages."""
        model = scripted_model([text("first")], [text("second")])
        agent = make_langchain_agent(model)

        await agent.run_agent(hi("one"), recorder)
        await agent.run_agent(hi("two"), recorder)

        contents = [m.content for m in model.calls[1]]
        assert contents == ["one", "first", "two"]


class TestCallerTools:
    """Tests for tools declared by the caller and executed on their side."""

    async def test_tool_call_deferred_past_message_end(self, scripted_model, recorder):
        """A tool call streamed mid-message is delivered after TEXT_MESSAGE_END."""
        model = scripted_model(
            [text("Let me check"), tool_chunk("lookup", '{"q":"x"}', "c1"), text(".")]
        )
        agent = make_langchain_agent(model)
        parameters = hi()
        parameters.tools = [Tool(name="lookup", description="Look things up")]

        await agent.run_agent(parameters, recorder)

        assert recorder.event_types == [
            "RUN_STARTED",
            "TEXT_MESSAGE_START",
            "TEXT_MESSAGE_CONTENT",
            "TEXT_MESSAGE_CONTENT",
            "TEXT_MESSAGE_END",
            "TOOL_CALL_START",
            "TOOL_CALL_ARGS",
            "TOOL_CALL_END",
            "RUN_FINISHED",
        ]
        start = recorder.events[5]
        assert (start.tool_call_id, start.tool_call_name) == ("c1", "lookup")
        assert start.parent_message_id == recorder.events[1].message_id
        assert recorder.events[6].delta == '{"q":"x"}'

    async def test_caller_tools_bound_to_model(self, scripted_model, recorder):
        """Declared tools are bound as function specs."""
        model = scripted_model([text("ok")])
        parameters = hi()
        parameters.tools = [Tool(name="lookup", parameters={"type": "object", "properties": {}})]

        await make_langchain_agent(model).run_agent(parameters, recorder)

        assert model.bound_tools[0]["function"]["name"] == "lookup"

    async def test_tool_call_recorded_in_history(self, scripted_model, recorder):
        """The assistant message in the history lists the tool call."""
        model = scripted_model([tool_chunk("lookup", '{"q":', "c1"), tool_chunk(None, '"x"}', None)])
        agent = make_langchain_agent(model)

        await agent.run_agent(hi(), recorder)

        [tool_call] = agent.messages[-1].tool_calls
        assert tool_call.id == "c1"
        assert tool_call.function.arguments == '{"q":"x"}'
        args = [e.delta for e in recorder.events if e.type == "TOOL_CALL_ARGS"]
        assert args == ['{"q":', '"x"}']

    async def test_tool_call_without_arguments_gets_empty_object(self, scripted_model, recorder):
        """Every tool call carries at least one ARGS event."""
        agent = make_langchain_agent(scripted_model([tool_chunk("ping", "", "c1")]))

        await agent.run_agent(hi(), recorder)

        args = [e.delta for e in recorder.events if e.type == "TOOL_CALL_ARGS"]
        assert args == ["{}"]

    async def test_parallel_tool_calls_split_by_index(self, scripted_model, recorder):
        """Chunks with a new index start a new tool call."""
        model = scripted_model(
            [tool_chunk("a", "{}", "c1", index=0), tool_chunk("b", "{}", "c2", index=1)]
        )

        await make_langchain_agent(model).run_agent(hi(), recorder)

        tool_events = [(e.type, e.tool_call_id) for e in recorder.events if e.type.startswith("TOOL_CALL")]
        assert tool_events == [
            ("TOOL_CALL_START", "c1"),
            ("TOOL_CALL_ARGS", "c1"),
            ("TOOL_CALL_END", "c1"),
            ("TOOL_CALL_START", "c2"),
            ("TOOL_CALL_ARGS", "c2"),
            ("TOOL_CALL_END", "c2"),
        ]


class TestInProcessTools:
    """Tests for LangChain tools executed by the agent."""

    async def test_tool_result_fed_back_to_model(self, scripted_model, recorder):
        """The tool runs, its result is reported and the model answers in the same message."""
        model = scripted_model(
            [tool_chunk("lookup", '{"q":"x"}', "c1")],
            [text("The answer is known")],
        )
        agent = make_langchain_agent(model, tools=[lookup])

        await agent.run_agent(hi(), recorder)

        assert recorder.event_types == [
            "RUN_STARTED",
            "TEXT_MESSAGE_START",
            "TEXT_MESSAGE_CONTENT",
            "TEXT_MESSAGE_END",
            "TOOL_CALL_START",
            "TOOL_CALL_ARGS",
            "TOOL_CALL_END",
            "TOOL_CALL_RESULT",
            "RUN_FINISHED",
        ]
        result = recorder.events[7]
        assert result.tool_call_id == "c1"
        assert result.content == "answer for x"

        follow_up = model.calls[1]
        assert isinstance(follow_up[-2], AIMessage)
        assert follow_up[-2].tool_calls[0]["args"] == {"q": "x"}
        assert isinstance(follow_up[-1], ToolMessage)
        assert follow_up[-1].tool_call_id == "c1"

    async def test_history_holds_tool_result(self, scripted_model, recorder):
        """The tool result is appended after the assistant message."""
        model = scripted_model([tool_chunk("lookup", '{"q":"x"}', "c1")], [text("done")])
        agent = make_langchain_agent(model, tools=[lookup])

        await agent.run_agent(hi(), recorder)

        assistant, tool_message = agent.messages[-2:]
        assert assistant.content == "done"
        assert isinstance(tool_message, ProtocolToolMessage)
        assert tool_message.tool_call_id == "c1"
        assert tool_message.id == recorder.events[7].message_id

    async def test_tool_failure_reported_as_error(self, scripted_model, recorder):
        """A failing tool yields an error result instead of failing the run."""
        model = scripted_model([tool_chunk("broken", '{"q":"x"}', "c1")], [text("Sorry")])
        agent = make_langchain_agent(model, tools=[broken])

        await agent.run_agent(hi(), recorder)

        result = next(e for e in recorder.events if e.type == "TOOL_CALL_RESULT")
        assert result.content == "Error: backend offline"
        assert agent.messages[-1].error == "Error: backend offline"
        assert recorder.event_types[-1] == "RUN_FINISHED"

    async def test_tool_round_limit(self, scripted_model, recorder):
        """The model is called at most max_tool_rounds + 1 times."""
        looping = [[tool_chunk("lookup", '{"q":"x"}', f"c{i}")] for i in range(5)]
        model = scripted_model(*looping)
        agent = make_langchain_agent(model, tools=[lookup], max_tool_rounds=2)

        await agent.run_agent(hi(), recorder)

        assert len(model.calls) == 3
        assert recorder.event_types[-1] == "RUN_FINISHED"

    async def test_caller_tool_call_stops_the_loop(self, scripted_model, recorder):
        """When the caller must answer a call, the model is not called again."""
        model = scripted_model(
            [tool_chunk("lookup", '{"q":"x"}', "c1", index=0), tool_chunk("confirm", "{}", "c2", index=1)],
            [text("never streamed")],
        )
        agent = make_langchain_agent(model, tools=[lookup])

        await agent.run_agent(hi(), recorder)

        assert len(model.calls) == 1
        results = [e.tool_call_id for e in recorder.events if e.type == "TOOL_CALL_RESULT"]
        assert results == ["c1"]


class TestFailures:
    """Tests for model errors."""

    async def test_error_before_content(self, scripted_model, recorder):
        """An error before the first chunk yields RUN_STARTED then RUN_ERROR."""
        agent = make_langchain_agent(scripted_model([ValueError("model exploded")]))

        handle = agent.run_agent(hi(), recorder)
        with pytest.raises(RunFailedError, match="model exploded"):
            await handle

        assert recorder.event_types == ["RUN_STARTED", "RUN_ERROR"]
        assert recorder.events[-1].error == "model exploded"

    async def test_error_mid_stream(self, scripted_model, recorder):
        """An error after some content ends the run without TEXT_MESSAGE_END."""
        agent = make_langchain_agent(scripted_model([text("partial"), RuntimeError("connection reset")]))

        with pytest.raises(RunFailedError):
            await agent.run_agent(hi(), recorder)

        assert recorder.event_types == [
            "RUN_STARTED",
            "TEXT_MESSAGE_START",
            "TEXT_MESSAGE_CONTENT",
            "RUN_ERROR",
        ]
        assert not isinstance(agent.messages[-1], AssistantMessage)


class TestCancellation:
    """Tests for cooperative cancellation."""

    async def test_cancelled_before_streaming(self, scripted_model, recorder):
        """A run cancelled up front streams no content but still terminates."""
        model = scripted_model([text("never")])
        flag = CancellationFlag()
        flag.set()

        await make_langchain_agent(model).run_agent(hi(), recorder, flag)

        assert "TEXT_MESSAGE_CONTENT" not in recorder.event_types
        assert recorder.event_types[-1] == "RUN_FINISHED"
        assert model.calls == []

    async def test_cancelled_mid_stream(self, scripted_model, recorder):
        """Chunks after cancellation are not forwarded."""
        flag = CancellationFlag()
        original = recorder.on_text_message_content

        def cancel_on_content(event):
            original(event)
            flag.set()

        recorder.on_text_message_content = cancel_on_content
        model = scripted_model([text("one"), text("two"), text("three")])

        await make_langchain_agent(model).run_agent(hi(), recorder, flag)

        deltas = [e.delta for e in recorder.events if e.type == "TEXT_MESSAGE_CONTENT"]
        assert deltas == ["one"]
        assert recorder.event_types[-2:] == ["TEXT_MESSAGE_END", "RUN_FINISHED"]


class TestToolCallStream:
    """Tests for ToolCallStream grouping."""

    @pytest.fixture
    def emitter(self, make_agent, recorder) -> RunEmitter:
        async def body(input, emitter):
            return None

        agent = make_agent(body)
        emitter = RunEmitter(agent, agent.prepare_run_input(RunAgentParameters()), recorder)
        emitter.start()
        return emitter

    def test_same_id_continues_call(self, emitter, recorder):
        """Fragments sharing an id are one call."""
        stream = ToolCallStream(emitter, "m1")
        stream.add(tool_call_chunk(name="f", args='{"a":', id="c1", index=None))
        stream.add(tool_call_chunk(name=None, args="1}", id="c1", index=None))
        stream.close()

        [call] = stream.tool_calls
        assert call.function.arguments == '{"a":1}'
        assert recorder.event_types.count("TOOL_CALL_START") == 1

    def test_missing_id_generated(self, emitter):
        """Calls streamed without an id get one."""
        stream = ToolCallStream(emitter, "m1")
        stream.add(tool_call_chunk(name="f", args="{}", id=None, index=0))
        stream.close()

        assert stream.tool_calls[0].id

    def test_close_is_idempotent(self, emitter, recorder):
        """Closing twice ends the call once."""
        stream = ToolCallStream(emitter, "m1")
        stream.add(tool_call_chunk(name="f", args="{}", id="c1", index=0))
        stream.close()
        stream.close()

        assert recorder.event_types.count("TOOL_CALL_END") == 1


class TestExtractText:
    """Tests for extract_text."""

    def test_string_content(self):
        """String content is returned as is."""
        assert extract_text("hello") == "hello"

    def test_content_blocks(self):
        """Text blocks are joined and other blocks ignored."""
        content = [{"type": "text", "text": "Hel"}, {"type": "image_url", "image_url": "x"}, "lo"]
        assert extract_text(content) == "Hello"
