"""Conversion of protocol messages into LangChain chat messages."""

import json
import logging
from typing import Any

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_core.messages import BaseMessage as LangChainMessage
from langchain_core.messages import ToolMessage as LangChainToolMessage

from agui_server.platform.core.exceptions import UnsupportedRoleError
from agui_server.platform.core.mapping import resolve_message_id
from agui_server.platform.core.messages import (
    AssistantMessage,
    BaseMessage,
    DeveloperMessage,
    SystemMessage as ProtocolSystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
    generate_id,
)

logger = logging.getLogger(__name__)


def parse_tool_arguments(arguments: str) -> dict[str, Any]:
    """Decode the JSON argument text of a tool call.

    Empty or malformed text decodes to an empty dict, as does JSON that is not
    an object.
    """
    if not arguments:
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        logger.warning("Tool call arguments are not valid JSON: %r", arguments)
        return {}
    return parsed if isinstance(parsed, dict) else {}


class LangChainMessageMapper:
    """Maps protocol messages to LangChain messages, keeping message ids.

    Developer messages have no LangChain counterpart and are sent as human
    messages.
    """

    def to_provider_message(self, message: BaseMessage) -> LangChainMessage:
        message_id = resolve_message_id(message)
        match message:
            case UserMessage() | DeveloperMessage():
                return HumanMessage(content=message.content, id=message_id, name=message.name)
            case ProtocolSystemMessage():
                return SystemMessage(content=message.content, id=message_id)
            case AssistantMessage():
                return AIMessage(
                    content=message.content,
                    id=message_id,
                    tool_calls=[self._to_langchain_tool_call(tc) for tc in message.tool_calls],
                )
            case ToolMessage():
                return LangChainToolMessage(
                    content=message.forwarded_content,
                    tool_call_id=message.tool_call_id,
                    id=message_id,
                    status="error" if message.error is not None else "success",
                )
            case _:
                raise UnsupportedRoleError(f"Message type '{message.role}' is not supported.")

    def to_provider_messages(
        self, messages: list[BaseMessage], instructions: str = ""
    ) -> list[LangChainMessage]:
        """Map a history, prepending ``instructions`` as a system message when set."""
        converted = [self.to_provider_message(message) for message in messages]
        if instructions:
            converted.insert(0, SystemMessage(content=instructions))
        return converted

    @staticmethod
    def _to_langchain_tool_call(tool_call: ToolCall) -> dict[str, Any]:
        return {
            "name": tool_call.function.name,
            "args": parse_tool_arguments(tool_call.function.arguments),
            "id": tool_call.id or generate_id(),
            "type": "tool_call",
        }
