"""Stdio MCP server started by the plugin inside the supervised assistant.

Each tool call is forwarded to ``/tool/{name}`` on the foreman server whose
port the supervisor put in ``FOREMAN_PORT``. The bridge holds no state.
"""

import os
from typing import Any

import httpx
from loguru import logger
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from foreman.config.loader import load_config
from foreman.config.schema import Config
from foreman.tools.mini_goal import MiniGoalTool
from foreman.tools.web import WebFetchTool, WebSearchTool


class ToolForwarder:
    """Posts tool arguments to the foreman server and unwraps the text result."""

    def __init__(self, port: str | None):
        self.port = port

    async def call(self, name: str, arguments: dict[str, Any]) -> str:
        if not self.port:
            raise ToolError("FOREMAN_PORT is not set; start claude through `foreman run`.")

        # Mini goals run a whole agent session; no read timeout.
        async with httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None)) as client:
            try:
                response = await client.post(
                    f"http://127.0.0.1:{self.port}/tool/{name}",
                    json={k: v for k, v in arguments.items() if v is not None},
                )
            except httpx.HTTPError as e:
                raise ToolError(f"{name}: foreman server unreachable: {e}") from e

        if response.status_code == 404:
            raise ToolError(f"{name} is not enabled on this foreman server")
        if response.status_code != 200:
            raise ToolError(f"{name}: server error {response.status_code}: {response.text[:500]}")

        data = response.json()
        text = "\n".join(
            part.get("text", "") for part in data.get("content", []) if part.get("type") == "text"
        )
        if data.get("isError"):
            raise ToolError(text)
        return text


def create_bridge(config: Config, forwarder: ToolForwarder) -> FastMCP:
    """Build the FastMCP server, registering web tools only when configured."""
    mcp = FastMCP(name="foreman")

    @mcp.tool(name=MiniGoalTool.name, description=MiniGoalTool.description)
    async def mini_goal_worker(summary: str, detail: str) -> str:
        """
        Args:
            summary: One-line short summary of the mini goal.
            detail: Detailed description with file paths (@/absolute/path),
                background context, and expected outcome.
        """
        return await forwarder.call(MiniGoalTool.name, {"summary": summary, "detail": detail})

    if config.search.enabled:
        @mcp.tool(name=WebSearchTool.name, description=WebSearchTool.description)
        async def web_search(query: str) -> str:
            return await forwarder.call(WebSearchTool.name, {"query": query})

    if config.fetch.enabled:
        @mcp.tool(name=WebFetchTool.name, description=WebFetchTool.description)
        async def web_fetch(url: str, prompt: str | None = None) -> str:
            return await forwarder.call(WebFetchTool.name, {"url": url, "prompt": prompt})

    return mcp


def run_bridge() -> None:
    """Entry point for ``foreman mcp``."""
    config = load_config()
    # stdout carries the MCP protocol.
    logger.remove()
    if config.worker_name:
        logger.add(config.worker_dir / "foreman-mcp.log", level="INFO", rotation="10 MB", retention=3)

    mcp = create_bridge(config, ToolForwarder(os.environ.get("FOREMAN_PORT")))
    logger.info("MCP bridge starting")
    mcp.run(transport="stdio")
