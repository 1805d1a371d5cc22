"""Shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from foreman.bus.queue import RestartQueue
from foreman.history.compressor import PromptCompressor
from foreman.history.recent import RecentHistory
from foreman.history.store import HistoryStore
from foreman.server.hooks import HookHandlers
from foreman.session.registry import SessionRegistry
from foreman.supervisor.state import SharedState

CEILING = 1000


@pytest.fixture
def make_hooks(tmp_path):
    """Factory for HookHandlers over real stores and a mocked topic detector."""

    def _make(topic=None) -> HookHandlers:
        worker_dir = tmp_path / "worker"
        projects = tmp_path / "projects"
        projects.mkdir(exist_ok=True)
        store = HistoryStore(worker_dir)
        store.load()
        detector = MagicMock()
        detector.detect = AsyncMock(return_value=topic)
        return HookHandlers(
            worker_dir=worker_dir,
            store=store,
            recent=RecentHistory(worker_dir, store),
            compressor=PromptCompressor(store.path),
            sessions=SessionRegistry(worker_dir, projects),
            shared=SharedState(),
            restarts=RestartQueue(),
            detector=detector,
            max_session_size=CEILING,
        )

    return _make


@pytest.fixture
def write_main_log(tmp_path):
    """Write a session log of *size* bytes where the registry will find it."""

    def _write(session_id: str, size: int) -> None:
        d = tmp_path / "projects" / "-home-project"
        d.mkdir(parents=True, exist_ok=True)
        (d / f"{session_id}.jsonl").write_bytes(b"x" * size)

    return _write
