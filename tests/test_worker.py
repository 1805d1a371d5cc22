"""Tests for the Claude Agent SDK worker runner."""

from unittest.mock import MagicMock, patch

import pytest
from claude_agent_sdk import ResultMessage

from foreman.agent.worker import STDERR_TAIL_CHARS, WorkerRunner
from foreman.config.schema import WorkerConfig


def _result(subtype="success", result="all done", is_error=False, session_id="sid-9"):
    return ResultMessage(
        subtype=subtype,
        duration_ms=10,
        duration_api_ms=5,
        is_error=is_error,
        num_turns=2,
        session_id=session_id,
        result=result,
    )


def _fake_query(messages, captured=None):
    async def query(prompt, options):
        if captured is not None:
            captured["prompt"] = prompt
            captured["options"] = options
        for message in messages:
            yield message
    return query


class TestWorkerRunner:
    @pytest.mark.asyncio
    async def test_success(self):
        captured = {}
        with patch("foreman.agent.worker.query", _fake_query([_result()], captured)):
            outcome = await WorkerRunner(WorkerConfig()).run("## s\n\nd", resume="prev")

        assert outcome.text == "all done"
        assert outcome.session_id == "sid-9"
        assert not outcome.is_error
        options = captured["options"]
        assert options.resume == "prev"
        assert options.max_turns == 50
        assert options.permission_mode == "bypassPermissions"
        assert "mcp__foreman__mini-goal-worker" in options.disallowed_tools
        assert "WebSearch" in options.disallowed_tools

    @pytest.mark.asyncio
    async def test_error_result(self):
        with patch("foreman.agent.worker.query", _fake_query([_result(subtype="error_max_turns", result=None, is_error=True)])):
            outcome = await WorkerRunner(WorkerConfig()).run("x")
        assert outcome.is_error
        assert outcome.text == "Error: error_max_turns"

    @pytest.mark.asyncio
    async def test_session_id_from_earlier_message(self):
        early = MagicMock(spec=["session_id"])
        early.session_id = "from-init"
        with patch("foreman.agent.worker.query", _fake_query([early, _result(session_id="")])):
            outcome = await WorkerRunner(WorkerConfig()).run("x")
        assert outcome.session_id == "from-init"

    def test_stderr_tail(self):
        runner = WorkerRunner(WorkerConfig())
        runner._capture_stderr("a" * STDERR_TAIL_CHARS)
        runner._capture_stderr("last line")
        assert len(runner.stderr_tail) == STDERR_TAIL_CHARS
        assert runner.stderr_tail.endswith("last line\n")
