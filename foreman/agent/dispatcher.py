"""Mini-goal dispatch: resume or cold-start the worker and record the outcome."""

from dataclasses import dataclass
from typing import Sequence, assert_never

from loguru import logger

from foreman.agent.worker import WorkerRunner
from foreman.bus.events import RestartReason, RestartRequest
from foreman.bus.queue import RestartQueue
from foreman.history.entries import (
    AssistantResult,
    HistoryEntry,
    MiniGoal,
    MiniGoalResult,
    PlanAccepted,
    SubagentStart,
    SubagentStop,
    UserPrompt,
)
from foreman.history.store import HistoryStore
from foreman.prompts.restart import CONTINUE_PROMPT, MINI_GOAL_DEFERRED
from foreman.session.registry import SessionRegistry
from foreman.supervisor.state import SharedState

CONTEXT_RESULT_CHARS = 2000
INCOMPLETE_RESULT = "(INCOMPLETE: no result was recorded for this mini goal)"


@dataclass
class DispatchResult:
    text: str
    is_error: bool = False


def recent_pairs(
    history: Sequence[HistoryEntry],
    limit: int,
) -> list[tuple[MiniGoal, MiniGoalResult | None]]:
    """Return the last *limit* mini goals with their results, oldest first."""
    pairs: list[tuple[MiniGoal, MiniGoalResult | None]] = []
    for i, e in enumerate(history):
        if isinstance(e, MiniGoal):
            nxt = history[i + 1] if i + 1 < len(history) else None
            pairs.append((e, nxt if isinstance(nxt, MiniGoalResult) else None))
        elif isinstance(
            e, (UserPrompt, AssistantResult, MiniGoalResult, PlanAccepted, SubagentStart, SubagentStop)
        ):
            continue
        else:
            assert_never(e)
    return pairs[-limit:] if limit > 0 else []


def _clip(text: str, limit: int = CONTEXT_RESULT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "\n... (truncated)"


def build_context_block(pairs: list[tuple[MiniGoal, MiniGoalResult | None]]) -> str:
    """Render prior request/result pairs for a cold-started worker."""
    if not pairs:
        return ""
    parts = ["## Recent history (for context)"]
    for goal, result in pairs:
        parts.append(f"### Request\n**{goal.summary}**\n{_clip(goal.detail)}")
        if result is None:
            parts.append(f"### Result\n{INCOMPLETE_RESULT}")
        else:
            status = " (error)" if result.error else ""
            parts.append(f"### Result{status}\n{_clip(result.result)}")
    return "\n\n".join(parts)


class MiniGoalDispatcher:
    """
    Sends mini goals to the worker sub-session.

    Every dispatch records its ``mini_goal`` first, so an interrupted call
    still shows up as incomplete in the next system prompt. Two size guards
    run before the worker is touched:

    - the main session's log at or over the ceiling schedules a "continue"
      restart and defers the goal;
    - the worker's own log at or over the ceiling drops its session id and
      asks the caller to resend with full context.

    Failures never propagate: they come back as ``is_error`` results.
    """

    def __init__(
        self,
        worker_name: str,
        store: HistoryStore,
        sessions: SessionRegistry,
        shared: SharedState,
        restarts: RestartQueue,
        runner: WorkerRunner,
        max_session_size: int,
        context_pairs: int = 5,
    ):
        self.worker_name = worker_name
        self.store = store
        self.sessions = sessions
        self.shared = shared
        self.restarts = restarts
        self.runner = runner
        self.max_session_size = max_session_size
        self.context_pairs = context_pairs

    def main_session_oversized(self) -> bool:
        """True when the supervised session's log has reached the ceiling."""
        if not self.shared.main_session_id:
            return False
        record = self.sessions.find_log(self.shared.main_session_id)
        return record is not None and record.size_bytes >= self.max_session_size

    async def dispatch(self, summary: str, detail: str) -> DispatchResult:
        self.store.append(MiniGoal(summary=summary, detail=detail))
        logger.info(f"Mini goal: {summary}")

        if self.main_session_oversized():
            self.restarts.publish(
                RestartRequest(reason=RestartReason.continue_, carried_prompt=CONTINUE_PROMPT)
            )
            logger.info("Mini goal deferred: main session over size ceiling")
            return DispatchResult(text=MINI_GOAL_DEFERRED)

        try:
            session_id = self.sessions.read_id()

            if session_id:
                record = self.sessions.find_log(session_id)
                if record is not None and record.size_bytes >= self.max_session_size:
                    self.sessions.delete()
                    msg = (
                        f'CONTEXT_RESET: The mini-goal-worker "{self.worker_name}" session '
                        f"exceeded {self.max_session_size // 1024}KB "
                        f"(was {round(record.size_bytes / 1024)}KB) and has been automatically "
                        "reset. Please resend this task with full context information "
                        "(relevant file paths, background, and expected outcome) so the "
                        "worker can start fresh."
                    )
                    logger.warning(f"Worker session {session_id} reset: {record.size_bytes} bytes")
                    self.store.append(MiniGoalResult(summary=summary, result=msg, error=True))
                    return DispatchResult(text=msg, is_error=True)

            prompt = self.build_instruction(summary, detail, cold_start=session_id is None)
            outcome = await self.runner.run(prompt, resume=session_id)

            if outcome.session_id:
                self.sessions.save(outcome.session_id)

            text = outcome.text or "No result returned"
            self.store.append(MiniGoalResult(summary=summary, result=text, error=outcome.is_error))
            return DispatchResult(text=text, is_error=outcome.is_error)

        except Exception as e:
            msg = f"mini-goal-worker failed: {e}\n\nstderr:\n{self.runner.stderr_tail}"
            logger.error(f"Mini goal failed: {e}")
            self.store.append(MiniGoalResult(summary=summary, result=msg, error=True))
            return DispatchResult(text=msg, is_error=True)

    def build_instruction(self, summary: str, detail: str, cold_start: bool) -> str:
        """Build the worker prompt; cold starts get prior mini goals as context."""
        instruction = f"## {summary}\n\n{detail}"
        if not cold_start:
            return instruction
        # The current mini goal is the last entry; it is not its own context.
        prior = self.store.entries[:-1]
        context = build_context_block(recent_pairs(prior, self.context_pairs))
        if not context:
            return instruction
        return f"{context}\n\n---\n\n{instruction}"
