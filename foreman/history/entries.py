"""History entry types.

Each entry kind is its own frozen model with a ``type`` discriminator, so a
JSON line parses straight into the right variant and consumers can match
exhaustively with ``isinstance`` chains ending in ``assert_never``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

# Free-text fields longer than this are dropped (never truncated).
MAX_TEXT_LENGTH = 20_000


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _Entry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: str = Field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for one JSONL line; absent optional fields are omitted."""
        return self.model_dump(exclude_none=True)


class UserPrompt(_Entry):
    type: Literal["user_prompt"] = "user_prompt"
    prompt: str


class AssistantResult(_Entry):
    type: Literal["assistant_result"] = "assistant_result"
    message: str


class MiniGoal(_Entry):
    type: Literal["mini_goal"] = "mini_goal"
    summary: str
    detail: str


class MiniGoalResult(_Entry):
    type: Literal["mini_goal_result"] = "mini_goal_result"
    summary: str
    result: str
    error: bool = False


class PlanAccepted(_Entry):
    type: Literal["plan_accepted"] = "plan_accepted"
    plan: str


class SubagentStart(_Entry):
    type: Literal["subagent_start"] = "subagent_start"
    subagent_type: str | None = None
    description: str | None = None
    prompt: str | None = None


class SubagentStop(_Entry):
    type: Literal["subagent_stop"] = "subagent_stop"
    agent_id: str | None = None
    agent_type: str
    last_assistant_message: str | None = None


HistoryEntry = Annotated[
    Union[
        UserPrompt,
        AssistantResult,
        MiniGoal,
        MiniGoalResult,
        PlanAccepted,
        SubagentStart,
        SubagentStop,
    ],
    Field(discriminator="type"),
]

_adapter: TypeAdapter[HistoryEntry] = TypeAdapter(HistoryEntry)


def parse_entry(data: Any) -> HistoryEntry | None:
    """Parse a decoded JSON object into an entry, or None if it is not one."""
    try:
        return _adapter.validate_python(data)
    except ValidationError:
        return None


def drop_oversized(text: str | None) -> str | None:
    """Return *text* unchanged, or None when it exceeds MAX_TEXT_LENGTH."""
    if text is not None and len(text) > MAX_TEXT_LENGTH:
        return None
    return text


def is_complete(entries: list[HistoryEntry] | tuple[HistoryEntry, ...], index: int) -> bool:
    """A mini goal is complete iff the next entry is its result."""
    nxt = entries[index + 1] if index + 1 < len(entries) else None
    return isinstance(nxt, MiniGoalResult)
