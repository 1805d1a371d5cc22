"""Tests for hook handlers."""

import json

import pytest

from foreman.bus.events import RestartReason
from foreman.history.entries import MAX_TEXT_LENGTH, AssistantResult, UserPrompt
from foreman.prompts.restart import CONTINUE_PROMPT, SIZE_RESTART_REASON, TOPIC_RESTART_REASON
from foreman.server.hooks import LAST_PROMPT_FILENAME

CEILING = 1000


class TestSessionStart:
    @pytest.mark.asyncio
    async def test_returns_prompt_and_writes_artifact(self, make_hooks):
        hooks = make_hooks()
        hooks.store.append(UserPrompt(prompt="fix bug"))

        result = await hooks.handle("session-start", {"session_id": "main-1"})

        assert result.status == 200
        assert result.content_type == "text/plain"
        assert "[USER] fix bug" in result.body
        assert (hooks.worker_dir / LAST_PROMPT_FILENAME).read_text() == result.body
        assert hooks.shared.main_session_id == "main-1"

    @pytest.mark.asyncio
    async def test_main_session_recorded_once(self, make_hooks):
        hooks = make_hooks()
        await hooks.handle("session-start", {"session_id": "main-1"})
        await hooks.handle("session-start", {"session_id": "sub-2"})
        assert hooks.shared.main_session_id == "main-1"

    @pytest.mark.asyncio
    async def test_after_topic_restart_only_pointer(self, make_hooks):
        hooks = make_hooks()
        hooks.store.append(UserPrompt(prompt="old topic"))
        hooks.shared.begin_lifetime(RestartReason.topic)

        result = await hooks.handle("session-start", {})
        assert "old topic" not in result.body
        assert "1 earlier entries omitted" in result.body


class TestUserPromptSubmit:
    @pytest.mark.asyncio
    async def test_records_prompt(self, make_hooks):
        hooks = make_hooks(topic=False)
        result = await hooks.handle("user-prompt-submit", {"prompt": "fix bug"})
        assert result.status == 200
        assert result.body == ""
        assert hooks.store.entries[-1].prompt == "fix bug"
        assert hooks.recent.entries[-1].text == "fix bug"

    @pytest.mark.asyncio
    async def test_no_prompt_is_noop(self, make_hooks):
        hooks = make_hooks()
        await hooks.handle("user-prompt-submit", {})
        assert len(hooks.store) == 0
        hooks.detector.detect.assert_not_called()

    @pytest.mark.asyncio
    async def test_topic_change_blocks_and_restarts(self, make_hooks):
        hooks = make_hooks(topic=True)
        hooks.recent.append(UserPrompt(prompt="earlier"))

        result = await hooks.handle("user-prompt-submit", {"prompt": "weather today?"})

        body = json.loads(result.body)
        assert body == {"decision": "block", "reason": TOPIC_RESTART_REASON}
        assert len(hooks.store) == 0
        assert len(hooks.recent) == 0
        request = await hooks.restarts.consume()
        assert request.reason is RestartReason.topic
        assert request.carried_prompt == "weather today?"

    @pytest.mark.asyncio
    async def test_no_classifier_signal_never_restarts(self, make_hooks):
        hooks = make_hooks(topic=None)
        for prompt in ("a", "b", "c"):
            await hooks.handle("user-prompt-submit", {"prompt": prompt})
        assert hooks.restarts.size == 0
        assert len(hooks.store) == 3

    @pytest.mark.asyncio
    async def test_oversized_main_session_restarts_with_continue(self, make_hooks, write_main_log):
        hooks = make_hooks(topic=False)
        hooks.shared.set_main_session("main-1")
        write_main_log("main-1", CEILING)

        result = await hooks.handle("user-prompt-submit", {"prompt": "next step"})

        assert json.loads(result.body)["reason"] == SIZE_RESTART_REASON
        assert hooks.store.entries[-1].prompt == "next step"
        request = await hooks.restarts.consume()
        assert request.reason is RestartReason.size
        assert request.carried_prompt == CONTINUE_PROMPT

    @pytest.mark.asyncio
    async def test_first_prompt_after_restart_skips_checks(self, make_hooks, write_main_log):
        hooks = make_hooks(topic=True)
        hooks.shared.begin_lifetime(RestartReason.topic)
        hooks.shared.set_main_session("main-1")
        write_main_log("main-1", CEILING * 2)

        result = await hooks.handle("user-prompt-submit", {"prompt": "weather today?"})

        assert result.body == ""
        hooks.detector.detect.assert_not_called()
        assert hooks.restarts.size == 0
        assert hooks.store.entries[-1].prompt == "weather today?"
        assert hooks.shared.just_restarted is None

    @pytest.mark.asyncio
    async def test_continue_prompt_not_recorded(self, make_hooks):
        hooks = make_hooks()
        hooks.shared.begin_lifetime(RestartReason.size)
        await hooks.handle("user-prompt-submit", {"prompt": CONTINUE_PROMPT})
        assert len(hooks.store) == 0


class TestRecordingHooks:
    @pytest.mark.asyncio
    async def test_exit_plan_mode(self, make_hooks):
        hooks = make_hooks()
        await hooks.handle("exit-plan-mode", {"tool_input": {"plan": "1. do it"}})
        await hooks.handle("exit-plan-mode", {"tool_input": {}})
        assert [e.type for e in hooks.store.entries] == ["plan_accepted"]

    @pytest.mark.asyncio
    async def test_subagent_pretool_drops_oversized_prompt(self, make_hooks):
        hooks = make_hooks()
        await hooks.handle("subagent-pretool", {"tool_input": {
            "subagent_type": "Explore",
            "description": "scan",
            "prompt": "x" * (MAX_TEXT_LENGTH + 1),
        }})
        entry = hooks.store.entries[-1]
        assert entry.subagent_type == "Explore"
        assert entry.prompt is None

    @pytest.mark.asyncio
    async def test_subagent_stop_requires_agent_type(self, make_hooks):
        hooks = make_hooks()
        await hooks.handle("subagent-stop", {"agent_id": "a1"})
        assert len(hooks.store) == 0

        await hooks.handle("subagent-stop", {"agent_id": "a1", "agent_type": "Explore",
                                             "last_assistant_message": "found"})
        assert hooks.store.entries[-1].last_assistant_message == "found"

    @pytest.mark.asyncio
    async def test_stop_records_assistant_result(self, make_hooks):
        hooks = make_hooks()
        await hooks.handle("stop", {"last_assistant_message": "all done"})
        assert isinstance(hooks.store.entries[-1], AssistantResult)
        assert hooks.recent.entries[-1].text == "all done"

    @pytest.mark.asyncio
    async def test_stop_skips_oversized_message(self, make_hooks):
        hooks = make_hooks()
        await hooks.handle("stop", {"last_assistant_message": "x" * (MAX_TEXT_LENGTH + 1)})
        assert len(hooks.store) == 0

    @pytest.mark.asyncio
    async def test_unknown_hook(self, make_hooks):
        hooks = make_hooks()
        assert await hooks.handle("nope", {}) is None
