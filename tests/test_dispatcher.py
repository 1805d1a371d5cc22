"""Tests for the mini-goal dispatcher."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from foreman.agent.dispatcher import (
    CONTEXT_RESULT_CHARS,
    MiniGoalDispatcher,
    build_context_block,
    recent_pairs,
)
from foreman.agent.worker import WorkerOutcome
from foreman.bus.events import RestartReason
from foreman.bus.queue import RestartQueue
from foreman.history.entries import MiniGoal, MiniGoalResult, UserPrompt
from foreman.history.store import HistoryStore
from foreman.prompts.restart import CONTINUE_PROMPT, MINI_GOAL_DEFERRED
from foreman.session.registry import SessionRegistry
from foreman.supervisor.state import SharedState

CEILING = 1000


def _runner(outcome=None):
    runner = MagicMock()
    runner.run = AsyncMock(return_value=outcome or WorkerOutcome(text="done", session_id="new-sid"))
    runner.stderr_tail = ""
    return runner


def _make(tmp_path, runner=None):
    worker_dir = tmp_path / "worker"
    projects = tmp_path / "projects"
    projects.mkdir()
    store = HistoryStore(worker_dir)
    store.load()
    shared = SharedState()
    restarts = RestartQueue()
    dispatcher = MiniGoalDispatcher(
        worker_name="w1",
        store=store,
        sessions=SessionRegistry(worker_dir, projects),
        shared=shared,
        restarts=restarts,
        runner=runner or _runner(),
        max_session_size=CEILING,
        context_pairs=5,
    )
    return dispatcher, projects


def _write_log(projects, session_id, size):
    d = projects / "-home-project"
    d.mkdir(exist_ok=True)
    (d / f"{session_id}.jsonl").write_bytes(b"x" * size)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_cold_start_injects_prior_pairs(self, tmp_path):
        dispatcher, _ = _make(tmp_path)
        for i in range(3):
            dispatcher.store.append(MiniGoal(summary=f"goal {i}", detail=f"detail {i}"))
            dispatcher.store.append(MiniGoalResult(summary=f"goal {i}", result=f"result {i}"))

        result = await dispatcher.dispatch("refactor auth", "move to tokens")

        assert result.is_error is False
        assert result.text == "done"
        prompt = dispatcher.runner.run.call_args.args[0]
        assert "## Recent history (for context)" in prompt
        assert prompt.count("### Request") == 3
        assert prompt.count("### Result") == 3
        assert prompt.index("goal 0") < prompt.index("goal 1") < prompt.index("goal 2")
        assert prompt.endswith("## refactor auth\n\nmove to tokens")
        assert dispatcher.runner.run.call_args.kwargs["resume"] is None

    @pytest.mark.asyncio
    async def test_records_goal_and_result_and_session(self, tmp_path):
        dispatcher, _ = _make(tmp_path)
        await dispatcher.dispatch("s", "d")

        entries = dispatcher.store.entries
        assert isinstance(entries[0], MiniGoal)
        assert isinstance(entries[1], MiniGoalResult)
        assert entries[1].result == "done"
        assert entries[1].error is False
        assert dispatcher.sessions.read_id() == "new-sid"

    @pytest.mark.asyncio
    async def test_resume_sends_bare_instruction(self, tmp_path):
        dispatcher, projects = _make(tmp_path)
        dispatcher.store.append(MiniGoal(summary="old", detail="d"))
        dispatcher.store.append(MiniGoalResult(summary="old", result="r"))
        dispatcher.sessions.save("saved-sid")
        _write_log(projects, "saved-sid", CEILING - 1)

        await dispatcher.dispatch("s", "d")

        prompt = dispatcher.runner.run.call_args.args[0]
        assert prompt == "## s\n\nd"
        assert dispatcher.runner.run.call_args.kwargs["resume"] == "saved-sid"

    @pytest.mark.asyncio
    async def test_main_session_over_ceiling_defers(self, tmp_path):
        dispatcher, projects = _make(tmp_path)
        dispatcher.shared.set_main_session("main-sid")
        _write_log(projects, "main-sid", CEILING + 1)

        result = await dispatcher.dispatch("refactor auth", "...")

        assert result.is_error is False
        assert result.text == MINI_GOAL_DEFERRED
        dispatcher.runner.run.assert_not_called()
        assert dispatcher.restarts.size == 1
        request = await dispatcher.restarts.consume()
        assert request.reason is RestartReason.continue_
        assert request.carried_prompt == CONTINUE_PROMPT
        # The goal is recorded without a result so it shows as incomplete.
        assert [e.type for e in dispatcher.store.entries] == ["mini_goal"]

    @pytest.mark.asyncio
    async def test_worker_session_over_ceiling_resets(self, tmp_path):
        dispatcher, projects = _make(tmp_path)
        dispatcher.sessions.save("big-sid")
        _write_log(projects, "big-sid", CEILING)

        result = await dispatcher.dispatch("s", "d")

        assert result.is_error is True
        assert result.text.startswith('CONTEXT_RESET: The mini-goal-worker "w1" session')
        assert dispatcher.sessions.read_id() is None
        dispatcher.runner.run.assert_not_called()
        last = dispatcher.store.entries[-1]
        assert isinstance(last, MiniGoalResult)
        assert last.error is True

        await dispatcher.dispatch("s", "d with full context")
        assert dispatcher.runner.run.call_args.kwargs["resume"] is None
        assert "## Recent history (for context)" in dispatcher.runner.run.call_args.args[0]

    @pytest.mark.asyncio
    async def test_failure_becomes_error_result(self, tmp_path):
        runner = _runner()
        runner.run.side_effect = RuntimeError("cli crashed")
        runner.stderr_tail = "fatal: something"
        dispatcher, _ = _make(tmp_path, runner=runner)

        result = await dispatcher.dispatch("s", "d")

        assert result.is_error is True
        assert result.text == "mini-goal-worker failed: cli crashed\n\nstderr:\nfatal: something"
        last = dispatcher.store.entries[-1]
        assert last.error is True
        assert last.result == result.text

    @pytest.mark.asyncio
    async def test_empty_result_text(self, tmp_path):
        dispatcher, _ = _make(tmp_path, runner=_runner(WorkerOutcome(text="", session_id=None)))
        result = await dispatcher.dispatch("s", "d")
        assert result.text == "No result returned"
        assert dispatcher.sessions.read_id() is None


class TestContextBlock:
    def test_pairs_exclude_unrelated_entries(self):
        history = [
            UserPrompt(prompt="p"),
            MiniGoal(summary="a", detail="d"),
            MiniGoalResult(summary="a", result="r"),
            MiniGoal(summary="b", detail="d"),
            UserPrompt(prompt="p2"),
        ]
        pairs = recent_pairs(history, 5)
        assert [(g.summary, r is not None) for g, r in pairs] == [("a", True), ("b", False)]

    def test_limit_keeps_most_recent(self):
        history = []
        for i in range(8):
            history.append(MiniGoal(summary=f"g{i}", detail="d"))
            history.append(MiniGoalResult(summary=f"g{i}", result="r"))
        pairs = recent_pairs(history, 5)
        assert [g.summary for g, _ in pairs] == ["g3", "g4", "g5", "g6", "g7"]

    def test_incomplete_flagged_and_results_clipped(self):
        block = build_context_block([
            (MiniGoal(summary="a", detail="d"), MiniGoalResult(summary="a", result="r" * 5000)),
            (MiniGoal(summary="b", detail="d"), None),
        ])
        assert "INCOMPLETE" in block
        assert "r" * CONTEXT_RESULT_CHARS in block
        assert "r" * (CONTEXT_RESULT_CHARS + 1) not in block

    def test_empty(self):
        assert build_context_block([]) == ""
