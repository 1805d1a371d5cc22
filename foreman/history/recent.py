"""Recent-history window: a bounded, derived cache of the last few turns."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, assert_never

from loguru import logger

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

RECENT_FILENAME = "recent-history.json"
MAX_ENTRIES = 40  # 20 request/response pairs
MAX_MESSAGE_CHARS = 300


@dataclass(frozen=True)
class RecentEntry:
    """A user prompt or a (truncated) assistant reply."""

    type: str  # "user_prompt" | "assistant_result"
    text: str

    def to_dict(self) -> dict[str, str]:
        key = "prompt" if self.type == "user_prompt" else "message"
        return {"type": self.type, key: self.text}

    @classmethod
    def from_dict(cls, data: Any) -> "RecentEntry | None":
        if not isinstance(data, dict):
            return None
        kind = data.get("type")
        if kind == "user_prompt" and isinstance(data.get("prompt"), str):
            return cls(type=kind, text=data["prompt"])
        if kind == "assistant_result" and isinstance(data.get("message"), str):
            return cls(type=kind, text=data["message"])
        return None


def project(entry: HistoryEntry) -> RecentEntry | None:
    """Reduce a history entry to its recent-window form, if it has one."""
    if isinstance(entry, UserPrompt):
        return RecentEntry(type="user_prompt", text=entry.prompt)
    if isinstance(entry, AssistantResult):
        msg = entry.message
        if len(msg) > MAX_MESSAGE_CHARS:
            msg = msg[:MAX_MESSAGE_CHARS] + "..."
        return RecentEntry(type="assistant_result", text=msg)
    if isinstance(entry, (MiniGoal, MiniGoalResult, PlanAccepted, SubagentStart, SubagentStop)):
        return None
    assert_never(entry)


class RecentHistory:
    """
    Last MAX_ENTRIES user/assistant turns, persisted to ``recent-history.json``.

    This is a cache, not a source of truth: whenever the snapshot is
    missing, malformed, or too long it is rebuilt from the history store.
    """

    def __init__(self, worker_dir: Path, store: HistoryStore):
        self.path = worker_dir / RECENT_FILENAME
        self.store = store
        self._entries: list[RecentEntry] = []

    @property
    def entries(self) -> tuple[RecentEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load_or_rebuild(self) -> None:
        """Trust the snapshot only if it is a well-formed, bounded list."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            self.rebuild()
            return

        if not isinstance(raw, list) or len(raw) > MAX_ENTRIES:
            self.rebuild()
            return

        entries = [RecentEntry.from_dict(item) for item in raw]
        if any(e is None for e in entries):
            self.rebuild()
            return

        self._entries = entries
        logger.info(f"Recent history: loaded {len(entries)} entries")

    def rebuild(self) -> None:
        """Recompute the window from the history store."""
        projected = [p for p in (project(e) for e in self.store.entries) if p is not None]
        self._entries = projected[-MAX_ENTRIES:]
        self._persist()
        logger.info(f"Recent history: rebuilt from history ({len(self._entries)} entries)")

    def append(self, entry: HistoryEntry) -> None:
        """Add a projected entry; overflow triggers a rebuild instead of a shift."""
        item = project(entry)
        if item is None:
            return
        self._entries.append(item)
        if len(self._entries) > MAX_ENTRIES:
            self.rebuild()
        else:
            self._persist()
        logger.debug(f"Recent history: appended {item.type}, total={len(self._entries)}")

    def clear(self) -> None:
        self._entries = []
        self._persist()
        logger.info("Recent history: cleared")

    def transcript(self) -> str:
        """Render the window as ``User:``/``Assistant:`` lines."""
        lines = []
        for e in self._entries:
            role = "User" if e.type == "user_prompt" else "Assistant"
            lines.append(f"{role}: {e.text}")
        return "\n".join(lines)

    def _persist(self) -> None:
        try:
            self.path.write_text(
                json.dumps([e.to_dict() for e in self._entries], ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"Recent history: failed to write snapshot: {e}")
