"""Mini-goal worker: one Claude Agent SDK run, optionally resuming a session."""

from dataclasses import dataclass

from claude_agent_sdk import ClaudeAgentOptions, ResultMessage, query
from loguru import logger

from foreman.config.schema import WorkerConfig

STDERR_TAIL_CHARS = 2000


@dataclass
class WorkerOutcome:
    text: str
    session_id: str | None
    is_error: bool = False


class WorkerRunner:
    """
    Runs a single delegated instruction to completion.

    Captured CLI stderr is kept on the instance so a failed run can be
    reported with its diagnostic tail.
    """

    def __init__(self, config: WorkerConfig, cwd: str | None = None):
        self.config = config
        self.cwd = cwd
        self._stderr: list[str] = []

    @property
    def stderr_tail(self) -> str:
        return "".join(self._stderr)[-STDERR_TAIL_CHARS:]

    def _capture_stderr(self, line: str) -> None:
        self._stderr.append(line if line.endswith("\n") else line + "\n")

    def build_options(self, resume: str | None) -> ClaudeAgentOptions:
        return ClaudeAgentOptions(
            system_prompt={"type": "preset", "preset": "claude_code"},
            disallowed_tools=list(self.config.disallowed_tools),
            permission_mode="bypassPermissions",
            max_turns=self.config.max_turns,
            resume=resume,
            cwd=self.cwd,
            stderr=self._capture_stderr,
        )

    async def run(self, prompt: str, resume: str | None = None) -> WorkerOutcome:
        """Run *prompt* and return the final result. SDK errors propagate."""
        self._stderr = []
        options = self.build_options(resume)
        logger.info(f"Worker: starting run (resume={resume or 'none'}, {len(prompt)} chars)")

        text = ""
        session_id: str | None = None
        is_error = False
        async for message in query(prompt=prompt, options=options):
            sid = getattr(message, "session_id", None)
            if sid:
                session_id = sid
            if isinstance(message, ResultMessage):
                if message.subtype == "success" and not message.is_error:
                    text = message.result or ""
                else:
                    text = f"Error: {message.result or message.subtype}"
                    is_error = True

        logger.info(f"Worker: run finished (session={session_id}, error={is_error})")
        return WorkerOutcome(text=text, session_id=session_id, is_error=is_error)
