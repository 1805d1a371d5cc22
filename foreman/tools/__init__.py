"""Tools exposed to the supervised assistant."""

from foreman.tools.base import Tool, ToolRegistry, ToolResult
from foreman.tools.mini_goal import MiniGoalTool
from foreman.tools.web import WebFetchTool, WebSearchTool

__all__ = [
    "MiniGoalTool",
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "WebFetchTool",
    "WebSearchTool",
]
