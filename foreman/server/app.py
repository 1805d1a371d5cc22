"""Loopback HTTP server that the assistant's hooks and MCP bridge call into."""

import json
from typing import Any

from aiohttp import web
from loguru import logger

from foreman.history.recent import RecentHistory
from foreman.history.store import HistoryStore
from foreman.server.hooks import HookHandlers
from foreman.session.registry import SessionRegistry
from foreman.tools.base import ToolRegistry

HOST = "127.0.0.1"


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Server error on {request.method} {request.path}: {e}")
        return web.json_response({"error": str(e)}, status=500)


async def read_json(request: web.Request) -> dict[str, Any]:
    """Decode the request body; anything but a JSON object becomes {}."""
    raw = await request.text()
    try:
        data = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


class ForemanServer:
    """Routes ``/hook/{name}``, ``/tool/{name}`` and ``/clear-history``."""

    def __init__(
        self,
        hooks: HookHandlers,
        tools: ToolRegistry,
        store: HistoryStore,
        recent: RecentHistory,
        sessions: SessionRegistry,
    ):
        self.hooks = hooks
        self.tools = tools
        self.store = store
        self.recent = recent
        self.sessions = sessions
        self._runner: web.AppRunner | None = None
        self.port: int | None = None

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[error_middleware])
        app.router.add_post("/hook/{name}", self._handle_hook)
        app.router.add_post("/tool/{name}", self._handle_tool)
        app.router.add_post("/clear-history", self._handle_clear)
        return app

    async def start(self, host: str = HOST, port: int = 0) -> int:
        """Start listening; returns the bound port (ephemeral when *port* is 0)."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()

        self.port = self._runner.addresses[0][1]
        logger.info(f"Listening on http://{host}:{self.port}")
        return self.port

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Server stopped")

    async def _handle_hook(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        logger.debug(f"POST /hook/{name}")
        result = await self.hooks.handle(name, await read_json(request))
        if result is None:
            raise web.HTTPNotFound()
        return web.Response(status=result.status, text=result.body, content_type=result.content_type)

    async def _handle_tool(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        logger.debug(f"POST /tool/{name}")
        result = await self.tools.execute(name, await read_json(request))
        if result is None:
            raise web.HTTPNotFound()
        return web.json_response(result.to_dict())

    async def _handle_clear(self, request: web.Request) -> web.Response:
        self.store.clear()
        self.recent.clear()
        self.sessions.delete()
        logger.info("History cleared")
        return web.Response(status=200)
