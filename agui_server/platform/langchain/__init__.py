"""LangChain chat model integration.

Maps protocol messages and tools to LangChain types and runs chat models as
agents that emit protocol events.
"""

from agui_server.platform.langchain.agent import LangChainAgent, ToolCallStream
from agui_server.platform.langchain.mapper import LangChainMessageMapper
from agui_server.platform.langchain.tools import LangChainToolMapper

__all__ = ["LangChainAgent", "LangChainMessageMapper", "LangChainToolMapper", "ToolCallStream"]
