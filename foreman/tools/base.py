"""Base class for tools served on ``/tool/{name}``."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class ToolResult:
    text: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        """MCP-style result payload."""
        data: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            data["isError"] = True
        return data


class Tool(ABC):
    """
    A tool the supervised assistant can call through the MCP bridge.

    Subclasses define ``name``, ``description`` and a JSON-schema
    ``parameters`` object, and implement ``execute``.
    """

    name: str
    description: str
    parameters: dict[str, Any]

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Run the tool. Expected failures come back as ``is_error`` results."""

    def missing_params(self, params: dict[str, Any]) -> list[str]:
        required = self.parameters.get("required", [])
        return [key for key in required if not isinstance(params.get(key), str) or not params[key]]


class ToolRegistry:
    """Name-indexed collection of enabled tools."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    async def execute(self, name: str, params: dict[str, Any]) -> ToolResult | None:
        """Run *name* with *params*; None if no such tool is registered."""
        tool = self._tools.get(name)
        if tool is None:
            return None
        missing = tool.missing_params(params)
        if missing:
            return ToolResult(text=f"Error: missing required parameter(s): {', '.join(missing)}", is_error=True)
        known = tool.parameters.get("properties", {})
        return await tool.execute(**{k: v for k, v in params.items() if k in known})
