"""Shorthand constructors for the events agents emit most often."""

from agui_server.platform.core.events import (
    RunErrorEvent,
    RunFinishedEvent,
    RunStartedEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)


def run_started_event(thread_id: str, run_id: str) -> RunStartedEvent:
    return RunStartedEvent(thread_id=thread_id, run_id=run_id)


def run_finished_event(thread_id: str, run_id: str) -> RunFinishedEvent:
    return RunFinishedEvent(thread_id=thread_id, run_id=run_id)


def run_error_event(message: str) -> RunErrorEvent:
    return RunErrorEvent(error=message)


def text_message_start_event(message_id: str, role: str = "assistant") -> TextMessageStartEvent:
    return TextMessageStartEvent(message_id=message_id, role=role)


def text_message_content_event(message_id: str, delta: str) -> TextMessageContentEvent:
    return TextMessageContentEvent(message_id=message_id, delta=delta)


def text_message_end_event(message_id: str) -> TextMessageEndEvent:
    return TextMessageEndEvent(message_id=message_id)


def tool_call_start_event(
    parent_message_id: str | None, tool_call_name: str, tool_call_id: str
) -> ToolCallStartEvent:
    return ToolCallStartEvent(
        parent_message_id=parent_message_id,
        tool_call_name=tool_call_name,
        tool_call_id=tool_call_id,
    )


def tool_call_args_event(delta: str, tool_call_id: str) -> ToolCallArgsEvent:
    return ToolCallArgsEvent(delta=delta, tool_call_id=tool_call_id)


def tool_call_end_event(tool_call_id: str) -> ToolCallEndEvent:
    return ToolCallEndEvent(tool_call_id=tool_call_id)


def tool_call_result_event(tool_call_id: str, message_id: str, content: str) -> ToolCallResultEvent:
    return ToolCallResultEvent(tool_call_id=tool_call_id, message_id=message_id, content=content)
