"""General-purpose assistant agent module."""

from .agent import AssistantAgentBuilder

__all__ = ["AssistantAgentBuilder"]
