"""Event dispatcher.

Routes a single event to a subscriber: the generic hook first, then exactly
one typed hook. Chunk events are rewritten into content events before they
reach a typed hook.
"""

from typing import Never, NoReturn

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
from agui_server.platform.core.exceptions import UnknownEventError
from agui_server.platform.core.subscriber import AgentSubscriber


def chunk_to_content(chunk: TextMessageChunkEvent) -> TextMessageContentEvent:
    """Build the content event equivalent to a chunk event."""
    return TextMessageContentEvent(
        message_id=chunk.message_id,
        delta=chunk.delta,
        timestamp=chunk.timestamp,
        raw_event=chunk.raw_event,
    )


def _unhandled(event: Never) -> NoReturn:
    # Typed as Never so a type checker reports any event class missing above
    raise UnknownEventError(f"Unknown event type: {type(event).__name__} ({event!r})")


def emit_event(event: Event, subscriber: AgentSubscriber) -> None:
    """Deliver ``event`` to ``subscriber``.

    Args:
        event: The event to deliver
        subscriber: Receiver of the generic and typed hooks

    Raises:
        UnknownEventError: If ``event`` is not one of the protocol event types
    """
    subscriber.on_event(event)

    match event:
        case RunStartedEvent():
            subscriber.on_run_started(event)
        case RunErrorEvent():
            subscriber.on_run_error(event)
        case RunFinishedEvent():
            subscriber.on_run_finished(event)
        case StepStartedEvent():
            subscriber.on_step_started(event)
        case StepFinishedEvent():
            subscriber.on_step_finished(event)
        case TextMessageStartEvent():
            subscriber.on_text_message_start(event)
        case TextMessageChunkEvent():
            subscriber.on_text_message_content(chunk_to_content(event))
        case TextMessageContentEvent():
            subscriber.on_text_message_content(event)
        case TextMessageEndEvent():
            subscriber.on_text_message_end(event)
        case ToolCallStartEvent():
            subscriber.on_tool_call_start(event)
        case ToolCallArgsEvent():
            subscriber.on_tool_call_args(event)
        case ToolCallEndEvent():
            subscriber.on_tool_call_end(event)
        case ToolCallResultEvent():
            subscriber.on_tool_call_result(event)
        case RawEvent():
            subscriber.on_raw(event)
        case CustomEvent():
            subscriber.on_custom(event)
        case MessagesSnapshotEvent():
            subscriber.on_messages_snapshot(event)
        case StateSnapshotEvent():
            subscriber.on_state_snapshot(event)
        case StateDeltaEvent():
            subscriber.on_state_delta(event)
        case _:
            _unhandled(event)
