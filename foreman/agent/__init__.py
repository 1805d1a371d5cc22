"""Agent-side logic: topic detection and mini-goal dispatch."""

from foreman.agent.dispatcher import DispatchResult, MiniGoalDispatcher
from foreman.agent.topic import TopicDetector
from foreman.agent.worker import WorkerOutcome, WorkerRunner

__all__ = [
    "DispatchResult",
    "MiniGoalDispatcher",
    "TopicDetector",
    "WorkerOutcome",
    "WorkerRunner",
]
