"""Provider-agnostic conversation messages.

Every provider integration maps to and from these types. Messages are
pydantic models tagged by ``role`` and serialize with camelCase aliases so
they can be placed on the wire unchanged.
"""

import uuid
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter
from pydantic.alias_generators import to_camel

from agui_server.platform.core.exceptions import MessageStateError


def generate_id() -> str:
    """Generate a fresh unique identifier for messages, runs and tool calls."""
    return str(uuid.uuid4())


class Role(StrEnum):
    """Conversation roles."""

    USER = "user"
    SYSTEM = "system"
    DEVELOPER = "developer"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ProtocolModel(BaseModel):
    """Base model for everything that crosses the wire.

    Fields are declared in snake_case and serialized in camelCase; both
    spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FunctionCall(ProtocolModel):
    """Function name and raw JSON argument text of a tool call."""

    name: str
    arguments: str = ""


class ToolCall(ProtocolModel):
    """A tool invocation requested by the assistant."""

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class BaseMessage(ProtocolModel):
    """Fields shared by every message.

    ``id`` is assigned once at construction and cannot be reassigned.
    ``content`` may grow through :meth:`append_content` until the message is
    marked complete.
    """

    id: str = Field(default_factory=generate_id, frozen=True)
    role: str
    name: str | None = None
    content: str = ""

    _complete: bool = PrivateAttr(default=False)

    @property
    def is_complete(self) -> bool:
        return self._complete

    def append_content(self, delta: str) -> None:
        """Append a streamed fragment to the content.

        Raises:
            MessageStateError: If the message was already marked complete
        """
        if self._complete:
            raise MessageStateError(f"Message '{self.id}' is complete; content is frozen.")
        self.content = self.content + delta

    def complete(self) -> None:
        """Freeze the content; further appends are rejected."""
        self._complete = True


class UserMessage(BaseMessage):
    role: Literal["user"] = "user"


class SystemMessage(BaseMessage):
    role: Literal["system"] = "system"


class DeveloperMessage(BaseMessage):
    role: Literal["developer"] = "developer"


class AssistantMessage(BaseMessage):
    """Assistant turn, optionally requesting tool calls."""

    role: Literal["assistant"] = "assistant"
    tool_calls: list[ToolCall] = Field(default_factory=list)


class ToolMessage(BaseMessage):
    """Result of a tool call.

    When ``error`` is set it supersedes ``content`` wherever the message is
    forwarded to a provider.
    """

    role: Literal["tool"] = "tool"
    tool_call_id: str
    error: str | None = None

    @property
    def forwarded_content(self) -> str:
        return self.error if self.error is not None else self.content


type Message = Annotated[
    UserMessage | SystemMessage | DeveloperMessage | AssistantMessage | ToolMessage,
    Field(discriminator="role"),
]

MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)
MESSAGE_LIST_ADAPTER: TypeAdapter[list[Message]] = TypeAdapter(list[Message])

MESSAGE_CLASSES: dict[str, type[BaseMessage]] = {
    Role.USER: UserMessage,
    Role.SYSTEM: SystemMessage,
    Role.DEVELOPER: DeveloperMessage,
    Role.ASSISTANT: AssistantMessage,
    Role.TOOL: ToolMessage,
}


def parse_message(data: dict[str, Any]) -> BaseMessage:
    """Validate a wire payload into the message class matching its role."""
    return MESSAGE_ADAPTER.validate_python(data)
