"""Conversion of protocol tool definitions into LangChain tool specs."""

import json
from typing import Any

from agui_server.platform.core.context import Tool
from agui_server.platform.core.mapping import ToolSchemaMapper

EMPTY_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}}


class LangChainToolMapper:
    """Builds OpenAI-style function specs accepted by ``BaseChatModel.bind_tools``.

    Tools whose parameter schema is missing or cannot be serialized are
    offered with an empty object schema.
    """

    def to_langchain_tool(self, tool: Tool) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": self._parameters(tool),
            },
        }

    def to_langchain_tools(self, tools: list[Tool]) -> list[dict[str, Any]]:
        return [self.to_langchain_tool(tool) for tool in tools]

    @staticmethod
    def _parameters(tool: Tool) -> dict[str, Any]:
        schema = ToolSchemaMapper.input_schema(tool)
        if not schema:
            return dict(EMPTY_PARAMETERS)
        parameters = json.loads(schema)
        if not isinstance(parameters, dict):
            return dict(EMPTY_PARAMETERS)
        return parameters
