"""Supervisor for the assistant process."""

from foreman.supervisor.state import (
    PendingRestart,
    SharedState,
    SupervisorError,
    SupervisorStatus,
)
from foreman.supervisor.supervisor import Supervisor

__all__ = [
    "PendingRestart",
    "SharedState",
    "Supervisor",
    "SupervisorError",
    "SupervisorStatus",
]
