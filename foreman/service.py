"""Wires the history, session, agent, server and supervisor pieces together."""

from pathlib import Path

from loguru import logger

from foreman.agent.dispatcher import MiniGoalDispatcher
from foreman.agent.topic import TopicDetector
from foreman.agent.worker import WorkerRunner
from foreman.bus.queue import RestartQueue
from foreman.config.schema import Config
from foreman.history.compressor import PromptCompressor
from foreman.history.recent import RecentHistory
from foreman.history.store import HistoryStore
from foreman.server.app import ForemanServer
from foreman.server.hooks import HookHandlers
from foreman.session.registry import SessionRegistry
from foreman.supervisor.state import SharedState, SupervisorError
from foreman.supervisor.supervisor import Supervisor
from foreman.tools.base import ToolRegistry
from foreman.tools.mini_goal import MiniGoalTool
from foreman.tools.web import WebFetchTool, WebSearchTool

PLUGIN_DIR = Path(__file__).parent / "plugin"


def build_tools(config: Config, dispatcher: MiniGoalDispatcher) -> ToolRegistry:
    """Register the mini-goal tool, plus the web tools whose credentials are set."""
    tools = ToolRegistry()
    tools.register(MiniGoalTool(dispatcher))

    if config.search.enabled:
        tools.register(WebSearchTool(config.search))
    else:
        logger.info("web-search disabled: missing SEARCH_API_KEY, SEARCH_API_URL or SEARCH_MODEL")

    if config.fetch.enabled:
        tools.register(WebFetchTool(config.fetch, config.classifier))
    else:
        logger.info("web-fetch disabled: missing CF_ACCOUNT_ID or CF_BROWSER_TOKEN")

    return tools


class ForemanService:
    """
    One supervised assistant plus everything that serves it.

    Construction only wires objects together; ``run`` loads state, starts
    the HTTP server on an ephemeral loopback port and supervises the
    assistant until it exits without a pending restart.
    """

    def __init__(
        self,
        config: Config,
        user_args: list[str] | None = None,
        plugin_dir: Path = PLUGIN_DIR,
    ):
        self.config = config
        worker_dir = config.worker_dir

        self.shared = SharedState()
        self.restarts = RestartQueue()
        self.store = HistoryStore(worker_dir)
        self.recent = RecentHistory(worker_dir, self.store)
        self.sessions = SessionRegistry(worker_dir, config.projects_path)
        self.compressor = PromptCompressor(self.store.path)

        self.dispatcher = MiniGoalDispatcher(
            worker_name=config.worker_name,
            store=self.store,
            sessions=self.sessions,
            shared=self.shared,
            restarts=self.restarts,
            runner=WorkerRunner(config.worker),
            max_session_size=config.max_session_size,
            context_pairs=config.worker.context_pairs,
        )
        self.tools = build_tools(config, self.dispatcher)
        self.hooks = HookHandlers(
            worker_dir=worker_dir,
            store=self.store,
            recent=self.recent,
            compressor=self.compressor,
            sessions=self.sessions,
            shared=self.shared,
            restarts=self.restarts,
            detector=TopicDetector(config.classifier),
            max_session_size=config.max_session_size,
        )
        self.server = ForemanServer(self.hooks, self.tools, self.store, self.recent, self.sessions)
        self.supervisor = Supervisor(
            worker_name=config.worker_name,
            worker_dir=worker_dir,
            plugin_dir=plugin_dir,
            restarts=self.restarts,
            shared=self.shared,
            command=config.claude_command,
            user_args=user_args,
            grace_seconds=config.restart_grace_seconds,
        )

    def load(self) -> None:
        try:
            self.store.load()
        except OSError as e:
            raise SupervisorError(f"Cannot create worker directory {self.config.worker_dir}: {e}") from e
        self.recent.load_or_rebuild()

    async def run(self) -> int:
        """Serve and supervise; returns the assistant's final exit code."""
        self.load()
        port = await self.server.start()
        try:
            return await self.supervisor.run(port)
        finally:
            await self.server.stop()
