"""Run lifecycle state machine.

A :class:`RunEmitter` is handed to the body of every run. All events of the
run go through it, which lets it enforce the legal ordering:

    PENDING --RUN_STARTED--> RUNNING
    RUNNING --TEXT_MESSAGE_START--> MESSAGE_OPEN --TEXT_MESSAGE_END--> RUNNING
    RUNNING --RUN_FINISHED--> FINISHED
    PENDING/RUNNING/MESSAGE_OPEN --RUN_ERROR--> ERRORED

Tool-call events offered while a text message is open are held in a
:class:`DeferredEventBuffer` and dispatched, in the order they were offered,
right after the message's TEXT_MESSAGE_END.
"""

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from agui_server.platform.core import factory
from agui_server.platform.core.buffer import DeferredEventBuffer
from agui_server.platform.core.context import RunAgentInput
from agui_server.platform.core.dispatcher import emit_event
from agui_server.platform.core.events import (
    CustomEvent,
    Event,
    MessagesSnapshotEvent,
    RawEvent,
    RunErrorEvent,
    RunFinishedEvent,
    RunStartedEvent,
    StateDeltaEvent,
    StateSnapshotEvent,
    StepFinishedEvent,
    StepStartedEvent,
    TextMessageChunkEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)
from agui_server.platform.core.exceptions import ProtocolError, RunClosedError
from agui_server.platform.core.messages import BaseMessage, generate_id
from agui_server.platform.core.subscriber import AgentSubscriber
from agui_server.platform.observability.metrics import record_event

if TYPE_CHECKING:
    from agui_server.platform.core.agent import CancellationFlag, LocalAgent

logger = logging.getLogger(__name__)


class RunState(StrEnum):
    """Position of a run in its lifecycle."""

    PENDING = "pending"
    RUNNING = "running"
    MESSAGE_OPEN = "message_open"
    FINISHED = "finished"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.FINISHED, RunState.ERRORED)


class RunEmitter:
    """Ordered event sink for a single run.

    Events are validated against the lifecycle before they are dispatched to
    the subscriber. Violations raise :class:`ProtocolError`; any emission
    after RUN_FINISHED or RUN_ERROR raises :class:`RunClosedError`.
    """

    def __init__(
        self,
        agent: "LocalAgent",
        input: RunAgentInput,
        subscriber: AgentSubscriber,
        cancellation: "CancellationFlag | None" = None,
    ) -> None:
        self._agent = agent
        self._input = input
        self._subscriber = subscriber
        self._cancellation = cancellation
        self._buffer = DeferredEventBuffer()
        self._state = RunState.PENDING
        self._message_id: str | None = None
        self._last_message_id: str | None = None
        self._open_steps: list[str] = []
        self._open_tool_calls: set[str] = set()
        self._ended_tool_calls: set[str] = set()
        self._error: str | None = None

    @property
    def input(self) -> RunAgentInput:
        return self._input

    @property
    def run_id(self) -> str:
        return self._input.run_id

    @property
    def thread_id(self) -> str:
        return self._input.thread_id

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def closed(self) -> bool:
        """True once RUN_FINISHED or RUN_ERROR has been emitted."""
        return self._state.is_terminal

    @property
    def error(self) -> str | None:
        """Error text carried by RUN_ERROR, if the run failed."""
        return self._error

    @property
    def message_id(self) -> str | None:
        """Id of the currently open text message."""
        return self._message_id

    @property
    def pending_events(self) -> int:
        """Number of tool-call events waiting for the open message to close."""
        return len(self._buffer)

    @property
    def cancelled(self) -> bool:
        return self._cancellation is not None and self._cancellation.is_set()

    def emit(self, event: Event) -> None:
        """Validate ``event`` against the lifecycle and dispatch or defer it.

        Raises:
            RunClosedError: If the run already reached a terminal event
            ProtocolError: If the event is not legal in the current state
        """
        if self._state.is_terminal:
            raise RunClosedError(
                f"Run '{self.run_id}' is already {self._state}; cannot emit {event.type}."
            )

        if isinstance(event, RunErrorEvent):
            self._on_error(event)
            return

        if self._state is RunState.PENDING and not isinstance(event, RunStartedEvent):
            raise ProtocolError(f"Run '{self.run_id}' has not started; cannot emit {event.type}.")

        match event:
            case RunStartedEvent():
                if self._state is not RunState.PENDING:
                    raise ProtocolError(f"Run '{self.run_id}' was already started.")
                self._state = RunState.RUNNING
                self._dispatch(event)
            case RunFinishedEvent():
                self._check_can_finish()
                self._state = RunState.FINISHED
                self._dispatch(event)
            case TextMessageStartEvent():
                if self._state is RunState.MESSAGE_OPEN:
                    raise ProtocolError(
                        f"Message '{self._message_id}' is still open; "
                        f"cannot start message '{event.message_id}'."
                    )
                self._state = RunState.MESSAGE_OPEN
                self._message_id = event.message_id
                self._last_message_id = event.message_id
                self._dispatch(event)
            case TextMessageContentEvent() | TextMessageChunkEvent():
                self._check_message_open(event.message_id)
                self._dispatch(event)
            case TextMessageEndEvent():
                self._check_message_open(event.message_id)
                self._state = RunState.RUNNING
                self._message_id = None
                self._dispatch(event)
                for deferred in self._buffer.flush():
                    self._dispatch(deferred)
            case ToolCallStartEvent() | ToolCallArgsEvent() | ToolCallEndEvent() | ToolCallResultEvent():
                self._track_tool_call(event)
                if self._state is RunState.MESSAGE_OPEN:
                    self._buffer.append(event)
                else:
                    self._dispatch(event)
            case StepStartedEvent():
                self._open_steps.append(event.step_name)
                self._dispatch(event)
            case StepFinishedEvent():
                if event.step_name not in self._open_steps:
                    raise ProtocolError(f"Step '{event.step_name}' was not started.")
                self._open_steps.remove(event.step_name)
                self._dispatch(event)
            case _:
                self._dispatch(event)

    def _dispatch(self, event: Event) -> None:
        record_event(event.type)
        emit_event(event, self._subscriber)

    def _on_error(self, event: RunErrorEvent) -> None:
        dropped = self._buffer.discard()
        if dropped:
            logger.debug("Discarded %d deferred events of failed run %s", dropped, self.run_id)
        self._state = RunState.ERRORED
        self._message_id = None
        self._error = event.error
        self._dispatch(event)

    def _check_can_finish(self) -> None:
        if self._state is RunState.MESSAGE_OPEN:
            raise ProtocolError(f"Cannot finish run while message '{self._message_id}' is open.")
        if self._open_tool_calls:
            open_ids = ", ".join(sorted(self._open_tool_calls))
            raise ProtocolError(f"Cannot finish run with unterminated tool calls: {open_ids}.")
        if self._open_steps:
            open_steps = ", ".join(self._open_steps)
            raise ProtocolError(f"Cannot finish run with unfinished steps: {open_steps}.")

    def _check_message_open(self, message_id: str) -> None:
        if self._state is not RunState.MESSAGE_OPEN:
            raise ProtocolError(f"No text message is open; got event for message '{message_id}'.")
        if message_id != self._message_id:
            raise ProtocolError(
                f"Event for message '{message_id}' while message '{self._message_id}' is open."
            )

    def _track_tool_call(
        self,
        event: ToolCallStartEvent | ToolCallArgsEvent | ToolCallEndEvent | ToolCallResultEvent,
    ) -> None:
        tool_call_id = event.tool_call_id
        match event:
            case ToolCallStartEvent():
                if tool_call_id in self._open_tool_calls or tool_call_id in self._ended_tool_calls:
                    raise ProtocolError(f"Tool call '{tool_call_id}' was already started.")
                self._open_tool_calls.add(tool_call_id)
            case ToolCallArgsEvent():
                if tool_call_id not in self._open_tool_calls:
                    raise ProtocolError(f"Tool call '{tool_call_id}' is not open; cannot add arguments.")
            case ToolCallEndEvent():
                if tool_call_id not in self._open_tool_calls:
                    raise ProtocolError(f"Tool call '{tool_call_id}' is not open; cannot end it.")
                self._open_tool_calls.remove(tool_call_id)
                self._ended_tool_calls.add(tool_call_id)
            case ToolCallResultEvent():
                if tool_call_id not in self._ended_tool_calls:
                    raise ProtocolError(f"Tool call '{tool_call_id}' has not ended; cannot report a result.")

    # Convenience emitters

    def start(self) -> None:
        self.emit(factory.run_started_event(self.thread_id, self.run_id))

    def start_step(self, step_name: str) -> None:
        self.emit(StepStartedEvent(step_name=step_name))

    def finish_step(self, step_name: str) -> None:
        self.emit(StepFinishedEvent(step_name=step_name))

    def start_message(self, role: str = "assistant", message_id: str | None = None) -> str:
        """Open a text message and return its id."""
        message_id = message_id or generate_id()
        self.emit(factory.text_message_start_event(message_id, role))
        return message_id

    def content(self, delta: str) -> None:
        """Append ``delta`` to the open message."""
        if self._message_id is None:
            raise ProtocolError("No text message is open; cannot emit content.")
        self.emit(factory.text_message_content_event(self._message_id, delta))

    def end_message(self) -> None:
        """Close the open message and flush deferred tool-call events."""
        if self._message_id is None:
            raise ProtocolError("No text message is open; nothing to end.")
        self.emit(factory.text_message_end_event(self._message_id))

    def start_tool_call(
        self,
        tool_call_name: str,
        tool_call_id: str | None = None,
        parent_message_id: str | None = None,
    ) -> str:
        """Emit TOOL_CALL_START and return the tool call id.

        The parent message defaults to the open message, or the last message
        this run opened.
        """
        tool_call_id = tool_call_id or generate_id()
        parent_message_id = parent_message_id or self._message_id or self._last_message_id
        self.emit(factory.tool_call_start_event(parent_message_id, tool_call_name, tool_call_id))
        return tool_call_id

    def tool_call_args(self, tool_call_id: str, delta: str) -> None:
        self.emit(factory.tool_call_args_event(delta, tool_call_id))

    def end_tool_call(self, tool_call_id: str) -> None:
        self.emit(factory.tool_call_end_event(tool_call_id))

    def tool_call_result(self, tool_call_id: str, content: str, message_id: str | None = None) -> str:
        """Emit TOOL_CALL_RESULT and return the id of the tool message."""
        message_id = message_id or generate_id()
        self.emit(factory.tool_call_result_event(tool_call_id, message_id, content))
        return message_id

    def tool_call(
        self,
        tool_call_name: str,
        arguments: str = "",
        tool_call_id: str | None = None,
        parent_message_id: str | None = None,
        result: str | None = None,
    ) -> str:
        """Emit a complete START/ARGS/END triple, plus RESULT when ``result`` is given."""
        tool_call_id = self.start_tool_call(tool_call_name, tool_call_id, parent_message_id)
        self.tool_call_args(tool_call_id, arguments)
        self.end_tool_call(tool_call_id)
        if result is not None:
            self.tool_call_result(tool_call_id, result)
        return tool_call_id

    def state_snapshot(self, snapshot: Any) -> None:
        self.emit(StateSnapshotEvent(snapshot=snapshot))

    def state_delta(self, delta: list[dict[str, Any]]) -> None:
        self.emit(StateDeltaEvent(delta=delta))

    def messages_snapshot(self, messages: list[BaseMessage] | None = None) -> None:
        """Emit the full history; defaults to the run's message list."""
        snapshot = self._input.messages if messages is None else messages
        self.emit(MessagesSnapshotEvent(messages=[m.model_dump() for m in snapshot]))

    def custom(self, name: str, value: Any = None) -> None:
        self.emit(CustomEvent(name=name, value=value))

    def raw(self, event: Any, source: str | None = None) -> None:
        self.emit(RawEvent(event=event, source=source))

    def append_message(self, message: BaseMessage) -> None:
        """Append ``message`` to the run history and notify the subscriber."""
        self._input.messages.append(message)
        self._subscriber.on_new_message(message)
        self._subscriber.on_messages_changed(self._agent.subscriber_params(self._input))

    def finish(self) -> None:
        """Emit RUN_FINISHED, first closing a message that is still open."""
        if self._state is RunState.MESSAGE_OPEN:
            self.end_message()
        self.emit(factory.run_finished_event(self.thread_id, self.run_id))

    def fail(self, error: BaseException | str) -> None:
        """Emit RUN_ERROR carrying the error's message text."""
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
        else:
            message = error
        self.emit(factory.run_error_event(message))
