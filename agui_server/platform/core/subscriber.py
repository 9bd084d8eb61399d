"""Subscriber contract.

A subscriber receives every dispatched event twice: once through the
mandatory generic ``on_event`` hook and once through the typed hook for its
kind. Typed hooks and lifecycle hooks default to no-ops.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from agui_server.platform.core.context import RunAgentInput
from agui_server.platform.core.events import (
    BaseEvent,
    CustomEvent,
    MessagesSnapshotEvent,
    RawEvent,
    RunErrorEvent,
    RunFinishedEvent,
    RunStartedEvent,
    StateDeltaEvent,
    StateSnapshotEvent,
    StepFinishedEvent,
    StepStartedEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)
from agui_server.platform.core.messages import BaseMessage

if TYPE_CHECKING:
    from agui_server.platform.core.agent import LocalAgent


@dataclass(frozen=True)
class AgentSubscriberParams:
    """Snapshot handed to lifecycle hooks.

    Attributes:
        messages: The agent's message history (live list)
        state: The agent's state at the time of the hook
        agent: The agent running the run
        input: The run's input
    """

    messages: list[BaseMessage]
    state: dict[str, Any]
    agent: "LocalAgent"
    input: RunAgentInput


class AgentSubscriber(ABC):
    """Consumer of run events and lifecycle notifications."""

    @abstractmethod
    def on_event(self, event: BaseEvent) -> None:
        """Receive every event exactly as emitted, chunks included."""

    # Run events

    def on_run_started(self, event: RunStartedEvent) -> None:
        pass

    def on_run_error(self, event: RunErrorEvent) -> None:
        pass

    def on_run_finished(self, event: RunFinishedEvent) -> None:
        pass

    def on_step_started(self, event: StepStartedEvent) -> None:
        pass

    def on_step_finished(self, event: StepFinishedEvent) -> None:
        pass

    # Text message events

    def on_text_message_start(self, event: TextMessageStartEvent) -> None:
        pass

    def on_text_message_content(self, event: TextMessageContentEvent) -> None:
        pass

    def on_text_message_end(self, event: TextMessageEndEvent) -> None:
        pass

    # Tool call events

    def on_tool_call_start(self, event: ToolCallStartEvent) -> None:
        pass

    def on_tool_call_args(self, event: ToolCallArgsEvent) -> None:
        pass

    def on_tool_call_end(self, event: ToolCallEndEvent) -> None:
        pass

    def on_tool_call_result(self, event: ToolCallResultEvent) -> None:
        pass

    # Other events

    def on_raw(self, event: RawEvent) -> None:
        pass

    def on_custom(self, event: CustomEvent) -> None:
        pass

    def on_messages_snapshot(self, event: MessagesSnapshotEvent) -> None:
        pass

    def on_state_snapshot(self, event: StateSnapshotEvent) -> None:
        pass

    def on_state_delta(self, event: StateDeltaEvent) -> None:
        pass

    # Lifecycle hooks

    def on_run_initialized(self, params: AgentSubscriberParams) -> None:
        """Called before the run is scheduled."""

    def on_run_failed(self, params: AgentSubscriberParams, error: BaseException) -> None:
        """Called after RUN_ERROR has been dispatched, before finalization."""

    def on_run_finalized(self, params: AgentSubscriberParams) -> None:
        """Called exactly once per run, after its terminal event."""

    def on_new_message(self, message: BaseMessage) -> None:
        """Called when a message is appended to the history during a run."""

    def on_messages_changed(self, params: AgentSubscriberParams) -> None:
        """Called after the history changed."""
