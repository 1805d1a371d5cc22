"""Supervisor: owns the assistant child process and its restarts."""

import asyncio
import os
import signal
from pathlib import Path

from loguru import logger

from foreman.bus.events import RestartRequest
from foreman.bus.queue import RestartQueue
from foreman.supervisor.state import SharedState, SupervisorError, SupervisorStatus

# Kept away from the assistant; foreman provides its own search/fetch tools.
DISALLOWED_TOOLS = "WebSearch,WebFetch"
TERMINATE_TIMEOUT = 10  # seconds before SIGTERM escalates to SIGKILL


def exit_status(code: int | None) -> int:
    """Shell-style status: a child killed by signal N reports 128+N."""
    if code is None:
        return 0
    return 128 - code if code < 0 else code


class Supervisor:
    """
    Runs exactly one assistant child at a time.

    Restart requests arrive on the RestartQueue. Each one overwrites the
    pending restart and, unless a termination is already scheduled, sends
    SIGTERM to the child after a short grace delay so the in-flight HTTP
    response can flush. When the child exits, a pending restart relaunches
    it with the carried prompt; otherwise its exit code is returned.
    """

    def __init__(
        self,
        worker_name: str,
        worker_dir: Path,
        plugin_dir: Path,
        restarts: RestartQueue,
        shared: SharedState,
        command: str = "claude",
        user_args: list[str] | None = None,
        grace_seconds: float = 0.2,
    ):
        self.worker_name = worker_name
        self.worker_dir = worker_dir
        self.plugin_dir = plugin_dir
        self.restarts = restarts
        self.shared = shared
        self.command = command
        self.user_args = list(user_args or [])
        self.grace_seconds = grace_seconds
        self.status = SupervisorStatus.IDLE
        self.launches = 0
        self._process: asyncio.subprocess.Process | None = None
        self._terminate_task: asyncio.Task | None = None
        self._port: int | None = None

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    async def run(self, port: int) -> int:
        """Launch the child and supervise it until it exits for good.

        Returns:
            The child's final exit status, with signal deaths mapped to 128+N.

        Raises:
            SupervisorError: If the working directory or the child cannot be created.
        """
        self._port = port
        consumer = asyncio.create_task(self._consume_restarts())
        self._ignore_interrupts()
        try:
            self.shared.begin_lifetime(None)
            await self._launch(None)

            while True:
                code = await self._process.wait()
                logger.info(f"Assistant exited with code {code}")
                self._cancel_termination()

                pending = self.shared.take_pending()
                if pending is None:
                    self.status = SupervisorStatus.EXITED
                    return exit_status(code)

                logger.info(f"Relaunching assistant (reason={pending.reason.value})")
                self.shared.begin_lifetime(pending.reason)
                await self._launch(pending.carried_prompt)
        finally:
            consumer.cancel()
            self._cancel_termination()

    def request_restart(self, request: RestartRequest) -> None:
        """Record *request* as the pending restart and schedule termination."""
        self.shared.set_pending(request)
        if self._terminate_task and not self._terminate_task.done():
            return
        self.status = SupervisorStatus.PENDING_RESTART
        self._terminate_task = asyncio.create_task(self._terminate_later())

    async def _consume_restarts(self) -> None:
        while True:
            request = await self.restarts.consume()
            self.request_restart(request)

    async def _terminate_later(self) -> None:
        await asyncio.sleep(self.grace_seconds)
        process = self._process
        if process is None or process.returncode is not None:
            return
        self.status = SupervisorStatus.TERMINATING
        logger.info(f"Terminating assistant (pid {process.pid}) for restart")
        try:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=TERMINATE_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Assistant ignored SIGTERM, killing")
                process.kill()
        except ProcessLookupError:
            pass

    def _cancel_termination(self) -> None:
        if self._terminate_task and not self._terminate_task.done():
            self._terminate_task.cancel()
        self._terminate_task = None

    def build_args(self, carried_prompt: str | None) -> list[str]:
        args = [
            "--plugin-dir", str(self.plugin_dir),
            "--dangerously-skip-permissions",
            "--disallowed-tools", DISALLOWED_TOOLS,
            *self.user_args,
        ]
        if carried_prompt:
            args.append(carried_prompt)
        return args

    def build_env(self) -> dict[str, str]:
        return {
            **os.environ,
            "WORKER_NAME": self.worker_name,
            "FOREMAN_PORT": str(self._port),
            "CLAUDE_PLUGIN_ROOT": str(self.plugin_dir),
        }

    async def _launch(self, carried_prompt: str | None) -> None:
        try:
            self.worker_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SupervisorError(f"Cannot create worker directory {self.worker_dir}: {e}") from e

        args = self.build_args(carried_prompt)
        logger.info(f"Launching {self.command} on port {self._port} (launch #{self.launches + 1})")
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.command, *args, env=self.build_env(),
            )
        except OSError as e:
            raise SupervisorError(f"Failed to start {self.command}: {e}") from e

        self.launches += 1
        self.status = SupervisorStatus.RUNNING

    def _ignore_interrupts(self) -> None:
        """Ctrl-C belongs to the interactive child, which shares our terminal."""
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGINT, lambda: None)
        except (NotImplementedError, RuntimeError):
            pass
