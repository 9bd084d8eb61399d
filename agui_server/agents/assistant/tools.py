"""Tools executed in-process by the assistant agent."""

from datetime import datetime

from langchain_core.tools import BaseTool, tool


@tool
def get_current_datetime() -> str:
    """Get the current local date and time, with its UTC offset, in ISO 8601 format."""
    return datetime.now().astimezone().isoformat()


def assistant_tools() -> list[BaseTool]:
    return [get_current_datetime]
