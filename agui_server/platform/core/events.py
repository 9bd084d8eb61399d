"""Protocol event taxonomy.

One pydantic model per event type, tagged by ``type``. ``Event`` is the
closed union of all of them; the dispatcher matches on it exhaustively.
"""

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from agui_server.platform.core.messages import Message, ProtocolModel


class EventType(StrEnum):
    """Wire values of the ``type`` discriminator."""

    RUN_STARTED = "RUN_STARTED"
    RUN_FINISHED = "RUN_FINISHED"
    RUN_ERROR = "RUN_ERROR"
    STEP_STARTED = "STEP_STARTED"
    STEP_FINISHED = "STEP_FINISHED"
    TEXT_MESSAGE_START = "TEXT_MESSAGE_START"
    TEXT_MESSAGE_CONTENT = "TEXT_MESSAGE_CONTENT"
    TEXT_MESSAGE_CHUNK = "TEXT_MESSAGE_CHUNK"
    TEXT_MESSAGE_END = "TEXT_MESSAGE_END"
    TOOL_CALL_START = "TOOL_CALL_START"
    TOOL_CALL_ARGS = "TOOL_CALL_ARGS"
    TOOL_CALL_END = "TOOL_CALL_END"
    TOOL_CALL_RESULT = "TOOL_CALL_RESULT"
    MESSAGES_SNAPSHOT = "MESSAGES_SNAPSHOT"
    STATE_SNAPSHOT = "STATE_SNAPSHOT"
    STATE_DELTA = "STATE_DELTA"
    CUSTOM = "CUSTOM"
    RAW = "RAW"


TERMINAL_EVENT_TYPES = frozenset({EventType.RUN_FINISHED, EventType.RUN_ERROR})

TOOL_CALL_EVENT_TYPES = frozenset(
    {
        EventType.TOOL_CALL_START,
        EventType.TOOL_CALL_ARGS,
        EventType.TOOL_CALL_END,
        EventType.TOOL_CALL_RESULT,
    }
)


class BaseEvent(ProtocolModel):
    """Envelope shared by all events.

    Attributes:
        type: Event discriminator
        timestamp: Optional epoch milliseconds
        raw_event: Optional provider payload passed through untouched
    """

    type: EventType
    timestamp: int | None = None
    raw_event: Any = None


class RunStartedEvent(BaseEvent):
    type: Literal["RUN_STARTED"] = "RUN_STARTED"
    thread_id: str
    run_id: str


class RunFinishedEvent(BaseEvent):
    type: Literal["RUN_FINISHED"] = "RUN_FINISHED"
    thread_id: str
    run_id: str


class RunErrorEvent(BaseEvent):
    type: Literal["RUN_ERROR"] = "RUN_ERROR"
    error: str


class StepStartedEvent(BaseEvent):
    type: Literal["STEP_STARTED"] = "STEP_STARTED"
    step_name: str


class StepFinishedEvent(BaseEvent):
    type: Literal["STEP_FINISHED"] = "STEP_FINISHED"
    step_name: str


class TextMessageStartEvent(BaseEvent):
    type: Literal["TEXT_MESSAGE_START"] = "TEXT_MESSAGE_START"
    message_id: str
    role: str = "assistant"


class TextMessageContentEvent(BaseEvent):
    type: Literal["TEXT_MESSAGE_CONTENT"] = "TEXT_MESSAGE_CONTENT"
    message_id: str
    delta: str


class TextMessageChunkEvent(BaseEvent):
    """Provider-near text fragment; delivered to subscribers as CONTENT."""

    type: Literal["TEXT_MESSAGE_CHUNK"] = "TEXT_MESSAGE_CHUNK"
    message_id: str
    delta: str = ""


class TextMessageEndEvent(BaseEvent):
    type: Literal["TEXT_MESSAGE_END"] = "TEXT_MESSAGE_END"
    message_id: str


class ToolCallStartEvent(BaseEvent):
    type: Literal["TOOL_CALL_START"] = "TOOL_CALL_START"
    tool_call_id: str
    tool_call_name: str
    parent_message_id: str | None = None


class ToolCallArgsEvent(BaseEvent):
    """Raw, possibly partial, argument text of a tool call."""

    type: Literal["TOOL_CALL_ARGS"] = "TOOL_CALL_ARGS"
    tool_call_id: str
    delta: str


class ToolCallEndEvent(BaseEvent):
    type: Literal["TOOL_CALL_END"] = "TOOL_CALL_END"
    tool_call_id: str


class ToolCallResultEvent(BaseEvent):
    type: Literal["TOOL_CALL_RESULT"] = "TOOL_CALL_RESULT"
    tool_call_id: str
    message_id: str
    role: Literal["tool"] = "tool"
    content: str


class MessagesSnapshotEvent(BaseEvent):
    type: Literal["MESSAGES_SNAPSHOT"] = "MESSAGES_SNAPSHOT"
    messages: list[Message] = Field(default_factory=list)


class StateSnapshotEvent(BaseEvent):
    type: Literal["STATE_SNAPSHOT"] = "STATE_SNAPSHOT"
    snapshot: Any = None


class StateDeltaEvent(BaseEvent):
    """Incremental state change as a list of JSON Patch operations."""

    type: Literal["STATE_DELTA"] = "STATE_DELTA"
    delta: list[dict[str, Any]] = Field(default_factory=list)


class CustomEvent(BaseEvent):
    type: Literal["CUSTOM"] = "CUSTOM"
    name: str
    value: Any = None


class RawEvent(BaseEvent):
    type: Literal["RAW"] = "RAW"
    event: Any = None
    source: str | None = None


type Event = Annotated[
    RunStartedEvent
    | RunFinishedEvent
    | RunErrorEvent
    | StepStartedEvent
    | StepFinishedEvent
    | TextMessageStartEvent
    | TextMessageContentEvent
    | TextMessageChunkEvent
    | TextMessageEndEvent
    | ToolCallStartEvent
    | ToolCallArgsEvent
    | ToolCallEndEvent
    | ToolCallResultEvent
    | MessagesSnapshotEvent
    | StateSnapshotEvent
    | StateDeltaEvent
    | CustomEvent
    | RawEvent,
    Field(discriminator="type"),
]

EVENT_ADAPTER: TypeAdapter[Event] = TypeAdapter(Event)


def is_terminal(event: BaseEvent) -> bool:
    """Return True for RUN_FINISHED and RUN_ERROR."""
    return event.type in TERMINAL_EVENT_TYPES
