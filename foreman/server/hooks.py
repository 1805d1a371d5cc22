"""Handlers for the assistant's lifecycle hooks."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

from loguru import logger

from foreman.agent.topic import TopicDetector
from foreman.bus.events import RestartReason, RestartRequest
from foreman.bus.queue import RestartQueue
from foreman.history.compressor import PromptCompressor
from foreman.history.entries import (
    MAX_TEXT_LENGTH,
    AssistantResult,
    HistoryEntry,
    PlanAccepted,
    SubagentStart,
    SubagentStop,
    UserPrompt,
    drop_oversized,
)
from foreman.history.recent import RecentHistory
from foreman.history.store import HistoryStore
from foreman.prompts.restart import CONTINUE_PROMPT, SIZE_RESTART_REASON, TOPIC_RESTART_REASON
from foreman.session.registry import SessionRegistry
from foreman.supervisor.state import SharedState

LAST_PROMPT_FILENAME = "LAST_SYSTEM_PROMPT.log"


@dataclass
class HookResult:
    status: int = 200
    body: str = ""
    content_type: str = "text/plain"

    @classmethod
    def block(cls, reason: str) -> "HookResult":
        """A decision that stops the submitted prompt from reaching the model."""
        return cls(body=json.dumps({"decision": "block", "reason": reason}), content_type="application/json")


class HookHandlers:
    """
    Records what the assistant does and decides when it should restart.

    Every handler takes the decoded hook payload and returns a HookResult.
    Restarts are never performed here: they are published on the restart
    queue for the supervisor.
    """

    def __init__(
        self,
        worker_dir: Path,
        store: HistoryStore,
        recent: RecentHistory,
        compressor: PromptCompressor,
        sessions: SessionRegistry,
        shared: SharedState,
        restarts: RestartQueue,
        detector: TopicDetector,
        max_session_size: int,
    ):
        self.worker_dir = worker_dir
        self.store = store
        self.recent = recent
        self.compressor = compressor
        self.sessions = sessions
        self.shared = shared
        self.restarts = restarts
        self.detector = detector
        self.max_session_size = max_session_size

        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[HookResult]]] = {
            "session-start": self.session_start,
            "user-prompt-submit": self.user_prompt_submit,
            "exit-plan-mode": self.exit_plan_mode,
            "subagent-pretool": self.subagent_pretool,
            "subagent-stop": self.subagent_stop,
            "stop": self.stop,
        }

    async def handle(self, name: str, data: dict[str, Any]) -> HookResult | None:
        """Dispatch to the named hook; None if there is no such hook."""
        handler = self._handlers.get(name)
        if handler is None:
            return None
        return await handler(data)

    def record(self, entry: HistoryEntry) -> None:
        self.store.append(entry)
        self.recent.append(entry)

    async def session_start(self, data: dict[str, Any]) -> HookResult:
        self.shared.set_main_session(data.get("session_id"))
        reason = self.shared.just_restarted
        prompt = self.compressor.build_system_prompt(
            self.store.entries, reason.value if reason else None
        )
        try:
            (self.worker_dir / LAST_PROMPT_FILENAME).write_text(prompt, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write {LAST_PROMPT_FILENAME}: {e}")
        logger.info(f"Hook session-start: system prompt {len(prompt)} chars")
        return HookResult(body=prompt)

    async def user_prompt_submit(self, data: dict[str, Any]) -> HookResult:
        prompt = data.get("prompt")
        logger.info(f"Hook user-prompt-submit: {prompt[:200] if prompt else '(no prompt)'}")
        if not prompt:
            return HookResult()

        restarted = self.shared.consume_just_restarted()
        if restarted is not None:
            # First prompt after a relaunch: never classify or size-check it.
            if not (restarted is not RestartReason.topic and prompt == CONTINUE_PROMPT):
                self.record(UserPrompt(prompt=prompt))
            return HookResult()

        if await self.detector.detect(prompt, self.recent):
            self.recent.clear()
            self.restarts.publish(RestartRequest(reason=RestartReason.topic, carried_prompt=prompt))
            return HookResult.block(TOPIC_RESTART_REASON)

        self.record(UserPrompt(prompt=prompt))

        if self.main_session_oversized():
            self.restarts.publish(RestartRequest(reason=RestartReason.size, carried_prompt=CONTINUE_PROMPT))
            return HookResult.block(SIZE_RESTART_REASON)

        return HookResult()

    async def exit_plan_mode(self, data: dict[str, Any]) -> HookResult:
        plan = (data.get("tool_input") or {}).get("plan")
        logger.info(f"Hook exit-plan-mode: {plan[:200] if plan else '(no plan)'}")
        if plan:
            self.store.append(PlanAccepted(plan=plan))
        return HookResult()

    async def subagent_pretool(self, data: dict[str, Any]) -> HookResult:
        tool_input = data.get("tool_input") or {}
        logger.info(
            f"Hook subagent-pretool: {tool_input.get('subagent_type')} / {tool_input.get('description')}"
        )
        self.store.append(SubagentStart(
            subagent_type=tool_input.get("subagent_type"),
            description=tool_input.get("description"),
            prompt=drop_oversized(tool_input.get("prompt")),
        ))
        return HookResult()

    async def subagent_stop(self, data: dict[str, Any]) -> HookResult:
        agent_type = data.get("agent_type")
        logger.info(f"Hook subagent-stop: {agent_type or '(no agent_type)'}")
        if agent_type:
            self.store.append(SubagentStop(
                agent_id=data.get("agent_id"),
                agent_type=agent_type,
                last_assistant_message=drop_oversized(data.get("last_assistant_message")),
            ))
        return HookResult()

    async def stop(self, data: dict[str, Any]) -> HookResult:
        message = data.get("last_assistant_message")
        logger.info(f"Hook stop: message length={len(message) if message else 0}")
        if message and len(message) <= MAX_TEXT_LENGTH:
            self.record(AssistantResult(message=message))
        return HookResult()

    def main_session_oversized(self) -> bool:
        if not self.shared.main_session_id:
            return False
        record = self.sessions.find_log(self.shared.main_session_id)
        if record is None:
            return False
        if record.size_bytes >= self.max_session_size:
            logger.info(f"Main session log {record.path} is {record.size_bytes} bytes, over the ceiling")
            return True
        return False
