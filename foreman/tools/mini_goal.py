"""mini-goal-worker tool."""

from typing import Any

from foreman.agent.dispatcher import MiniGoalDispatcher
from foreman.tools.base import Tool, ToolResult


class MiniGoalTool(Tool):
    """Delegate a mini goal to the resumable worker session."""

    name = "mini-goal-worker"
    description = (
        "Execute a mini goal in a dedicated worker session that keeps its own "
        "context between calls. Give a one-line summary and a detailed "
        "description with file paths, background and expected outcome."
    )

    parameters = {
        "type": "object",
        "properties": {
            "summary": {
                "type": "string",
                "description": "One-line short summary of the mini goal",
            },
            "detail": {
                "type": "string",
                "description": (
                    "Detailed description with file paths (@/absolute/path), "
                    "background context, and expected outcome"
                ),
            },
        },
        "required": ["summary", "detail"],
    }

    def __init__(self, dispatcher: MiniGoalDispatcher):
        self._dispatcher = dispatcher

    async def execute(self, summary: str, detail: str, **kwargs: Any) -> ToolResult:
        result = await self._dispatcher.dispatch(summary, detail)
        return ToolResult(text=result.text, is_error=result.is_error)
