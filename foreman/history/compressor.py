"""Three-tier history compression for the system prompt."""

from pathlib import Path
from typing import Sequence, assert_never

from foreman.history.entries import (
    AssistantResult,
    HistoryEntry,
    MiniGoal,
    MiniGoalResult,
    PlanAccepted,
    SubagentStart,
    SubagentStop,
    UserPrompt,
    is_complete,
)
from foreman.prompts.system import render_system_prompt


class PromptCompressor:
    """Renders history into an omitted / middle / recent digest.

    - recent: the last RECENT_MIN entries, stretched to always include the
      latest user prompt and everything after it; rendered in full.
    - middle: the MIDDLE_COUNT entries before that; user/assistant turns and
      mini-goal result summaries only.
    - omitted: everything older, replaced by a pointer to the full log.

    After a topic-triggered restart only the pointer is emitted.
    """

    RECENT_MIN = 20
    MIDDLE_COUNT = 30

    def __init__(self, history_path: Path):
        self.history_path = history_path

    def build(
        self,
        history: Sequence[HistoryEntry],
        just_restarted: str | None = None,
    ) -> str:
        """Return the history section, or "" for an empty history."""
        total = len(history)
        if total == 0:
            return ""

        if just_restarted == "topic":
            parts = [self._omitted_line(total)]
        else:
            recent_start, middle_start = self.boundaries(history)
            parts = []
            if middle_start > 0:
                parts.append(self._omitted_line(middle_start))
            for i in range(middle_start, recent_start):
                line = self._render_middle(history[i])
                if line is not None:
                    parts.append(line)
            for i in range(recent_start, total):
                parts.append(self._render_recent(history, i))

        body = "\n\n".join(parts)
        return f"\n## Chat history (restored from {self.history_path})\n\n{body}\n"

    def build_system_prompt(
        self,
        history: Sequence[HistoryEntry],
        just_restarted: str | None = None,
    ) -> str:
        return render_system_prompt(self.build(history, just_restarted))

    def boundaries(self, history: Sequence[HistoryEntry]) -> tuple[int, int]:
        """Return (recent_start, middle_start) for *history*."""
        total = len(history)

        last_user_prompt_from_end = 0
        for i in range(total - 1, -1, -1):
            if isinstance(history[i], UserPrompt):
                last_user_prompt_from_end = total - i
                break

        recent_count = max(self.RECENT_MIN, last_user_prompt_from_end)
        recent_start = max(0, total - recent_count)

        # Parity check: don't start the recent tier on a result whose
        # request would fall into the middle tier.
        if (
            recent_start > 0
            and isinstance(history[recent_start], MiniGoalResult)
            and isinstance(history[recent_start - 1], MiniGoal)
        ):
            recent_start -= 1

        middle_start = max(0, recent_start - self.MIDDLE_COUNT)
        return recent_start, middle_start

    def _omitted_line(self, count: int) -> str:
        return f"[... {count} earlier entries omitted. Full history: {self.history_path} ...]"

    @staticmethod
    def _render_middle(e: HistoryEntry) -> str | None:
        if isinstance(e, UserPrompt):
            return f"[USER] {e.prompt}"
        if isinstance(e, AssistantResult):
            return f"[ASSISTANT] {e.message}"
        if isinstance(e, MiniGoalResult):
            status = "ERROR" if e.error else "DONE"
            return f"[MINI_GOAL {status}] {e.summary}"
        if isinstance(e, (MiniGoal, PlanAccepted, SubagentStart, SubagentStop)):
            return None
        assert_never(e)

    @staticmethod
    def _render_recent(history: Sequence[HistoryEntry], i: int) -> str:
        e = history[i]
        if isinstance(e, UserPrompt):
            return f"[USER] {e.prompt}"
        if isinstance(e, AssistantResult):
            return f"[ASSISTANT] {e.message}"
        if isinstance(e, MiniGoal):
            if is_complete(history, i):
                return f"[MINI_GOAL] {e.summary}"
            return (
                "⚠️ INCOMPLETE MINI GOAL — needs to be re-dispatched:\n"
                f"Summary: {e.summary}\n"
                f"Detail: {e.detail}\n"
                "→ You should re-dispatch this mini goal using the mini-goal-worker "
                "tool to continue the unfinished work."
            )
        if isinstance(e, MiniGoalResult):
            status = "ERROR" if e.error else "DONE"
            return f"[MINI_GOAL {status}] {e.summary}: {e.result}"
        if isinstance(e, PlanAccepted):
            return f"[PLAN] {e.plan}"
        if isinstance(e, SubagentStart):
            return f"[SUBAGENT_START {e.subagent_type}] {e.description}: {e.prompt or ''}".rstrip()
        if isinstance(e, SubagentStop):
            return f"[SUBAGENT_STOP {e.agent_type}] {e.last_assistant_message or ''}".rstrip()
        assert_never(e)
