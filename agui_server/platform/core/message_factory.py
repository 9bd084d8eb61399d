"""Client-side reconstruction of messages from a decoded event stream.

:class:`MessageFactory` keeps the messages of a conversation keyed by id and
applies incremental updates to them. :class:`MessageCollector` is a
subscriber that drives a factory from dispatched events, which makes it a
convenient way to assemble the final conversation of a run.
"""

from agui_server.platform.core.events import (
    BaseEvent,
    MessagesSnapshotEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)
from agui_server.platform.core.exceptions import MessageNotFoundError, UnsupportedRoleError
from agui_server.platform.core.messages import (
    MESSAGE_CLASSES,
    AssistantMessage,
    BaseMessage,
    FunctionCall,
    ToolCall,
    ToolMessage,
)
from agui_server.platform.core.subscriber import AgentSubscriber


class MessageFactory:
    """Registry of messages under construction, in creation order."""

    def __init__(self) -> None:
        self._messages: dict[str, BaseMessage] = {}

    @property
    def messages(self) -> list[BaseMessage]:
        return list(self._messages.values())

    def create_message(self, message_id: str, role: str) -> BaseMessage:
        """Create an empty message of ``role`` named after its role.

        Raises:
            UnsupportedRoleError: If ``role`` is not a known role
        """
        message_class = MESSAGE_CLASSES.get(role)
        if message_class is None:
            raise UnsupportedRoleError(f"Message type '{role}' is not supported.")

        if message_class is ToolMessage:
            message = ToolMessage(id=message_id, name=role, tool_call_id="")
        else:
            message = message_class(id=message_id, name=role)
        self._messages[message_id] = message
        return message

    def get_message(self, message_id: str) -> BaseMessage:
        """Return the message with ``message_id``.

        Raises:
            MessageNotFoundError: If no such message was created
        """
        try:
            return self._messages[message_id]
        except KeyError:
            raise MessageNotFoundError(
                f"No message with id '{message_id}' found. "
                "Create a new message first with the 'MESSAGE_STARTED' event."
            ) from None

    def has_message(self, message_id: str) -> bool:
        return message_id in self._messages

    def add_chunk(self, message_id: str, delta: str) -> None:
        self.get_message(message_id).append_content(delta)

    def add_tool_call(self, message_id: str, tool_call: ToolCall) -> None:
        message = self.get_message(message_id)
        if not isinstance(message, AssistantMessage):
            raise UnsupportedRoleError(f"Cannot add tool call for message with role '{message.role}'.")
        message.tool_calls.append(tool_call)

    def set_error(self, message_id: str, error: str) -> None:
        message = self.get_message(message_id)
        if not isinstance(message, ToolMessage):
            raise UnsupportedRoleError(f"Cannot set an error for message with role '{message.role}'.")
        message.error = error

    def set_tool_call_id(self, message_id: str, tool_call_id: str) -> None:
        message = self.get_message(message_id)
        if not isinstance(message, ToolMessage):
            raise UnsupportedRoleError(f"Cannot set tool call id for message with role '{message.role}'.")
        message.tool_call_id = tool_call_id

    def remove_message(self, message_id: str) -> None:
        self._messages.pop(message_id, None)

    def replace_all(self, messages: list[BaseMessage]) -> None:
        self._messages = {message.id: message for message in messages}


class MessageCollector(AgentSubscriber):
    """Subscriber that assembles messages from text and tool-call events."""

    def __init__(self, factory: MessageFactory | None = None) -> None:
        self.factory = factory or MessageFactory()
        self.events: list[BaseEvent] = []
        # tool_call_id -> ToolCall, for routing argument deltas
        self._tool_calls: dict[str, ToolCall] = {}

    @property
    def messages(self) -> list[BaseMessage]:
        return self.factory.messages

    def on_event(self, event: BaseEvent) -> None:
        self.events.append(event)

    def on_text_message_start(self, event: TextMessageStartEvent) -> None:
        self.factory.create_message(event.message_id, event.role)

    def on_text_message_content(self, event: TextMessageContentEvent) -> None:
        self.factory.add_chunk(event.message_id, event.delta)

    def on_text_message_end(self, event: TextMessageEndEvent) -> None:
        self.factory.get_message(event.message_id).complete()

    def on_tool_call_start(self, event: ToolCallStartEvent) -> None:
        tool_call = ToolCall(id=event.tool_call_id, function=FunctionCall(name=event.tool_call_name))
        self._tool_calls[event.tool_call_id] = tool_call
        if event.parent_message_id is None:
            return
        if not self.factory.has_message(event.parent_message_id):
            self.factory.create_message(event.parent_message_id, "assistant")
        self.factory.add_tool_call(event.parent_message_id, tool_call)

    def on_tool_call_args(self, event: ToolCallArgsEvent) -> None:
        tool_call = self._tool_calls.get(event.tool_call_id)
        if tool_call is None:
            raise MessageNotFoundError(f"No tool call with id '{event.tool_call_id}' found.")
        tool_call.function.arguments += event.delta

    def on_tool_call_result(self, event: ToolCallResultEvent) -> None:
        self.factory.create_message(event.message_id, event.role)
        self.factory.set_tool_call_id(event.message_id, event.tool_call_id)
        self.factory.add_chunk(event.message_id, event.content)
        self.factory.get_message(event.message_id).complete()

    def on_messages_snapshot(self, event: MessagesSnapshotEvent) -> None:
        self.factory.replace_all(list(event.messages))
