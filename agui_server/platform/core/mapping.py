"""Contracts for mapping protocol messages and tools to provider types.

A provider integration supplies one mapper per direction it needs. Message
ids must survive mapping so that events and provider messages can be
correlated.
"""

import json
import logging
from typing import Protocol

from agui_server.platform.core.context import Tool
from agui_server.platform.core.messages import BaseMessage, generate_id

logger = logging.getLogger(__name__)


class ProviderMessageMapper[T](Protocol):
    """Converts a protocol message into a provider's message type."""

    def to_provider_message(self, message: BaseMessage) -> T: ...


def resolve_message_id(message: BaseMessage) -> str:
    """Return the id a provider message should carry for ``message``.

    Messages built by this package always carry an id, so the result is
    stable across calls. A fresh id is returned only for objects without one.
    """
    return getattr(message, "id", None) or generate_id()


class ToolSchemaMapper:
    """Renders tool parameter schemas for providers that take them as text."""

    @staticmethod
    def input_schema(tool: Tool) -> str:
        """Serialize ``tool.parameters`` to JSON.

        Returns an empty string when the schema cannot be serialized; the tool
        is then offered without argument schema.
        """
        try:
            return json.dumps(tool.parameters)
        except (TypeError, ValueError) as e:
            logger.warning("Cannot serialize parameters of tool '%s': %s", tool.name, e)
            return ""
