"""Shared state and state-machine types for the supervisor."""

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from foreman.bus.events import RestartReason, RestartRequest


class SupervisorStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PENDING_RESTART = "pending_restart"
    TERMINATING = "terminating"
    EXITED = "exited"


class SupervisorError(Exception):
    """Raised when the supervised process cannot be started."""


@dataclass
class PendingRestart:
    carried_prompt: str
    reason: RestartReason


class SharedState:
    """
    Process-wide state for one supervised-process lifetime.

    - ``main_session_id``: set by the first session-start hook of a
      lifetime, reset on relaunch.
    - ``just_restarted``: reason of the relaunch that started this
      lifetime; consumed by its first submitted prompt.
    - ``pending``: the restart to perform when the child exits. Last
      trigger wins.
    """

    def __init__(self) -> None:
        self.main_session_id: str | None = None
        self.just_restarted: RestartReason | None = None
        self.pending: PendingRestart | None = None

    def set_main_session(self, session_id: str | None) -> bool:
        """Record the main session id once per lifetime. Returns True if set."""
        if not session_id or self.main_session_id:
            return False
        self.main_session_id = session_id
        logger.info(f"Main session id: {session_id}")
        return True

    def consume_just_restarted(self) -> RestartReason | None:
        """Return and clear the just-restarted reason."""
        reason = self.just_restarted
        self.just_restarted = None
        return reason

    def set_pending(self, request: RestartRequest) -> None:
        if self.pending is not None:
            logger.info(
                f"Overwriting pending restart ({self.pending.reason.value} "
                f"-> {request.reason.value})"
            )
        self.pending = PendingRestart(carried_prompt=request.carried_prompt, reason=request.reason)

    def take_pending(self) -> PendingRestart | None:
        """Consume the pending restart, if any."""
        pending = self.pending
        self.pending = None
        return pending

    def begin_lifetime(self, restarted: RestartReason | None) -> None:
        """Reset per-lifetime fields before (re)launching the child."""
        self.main_session_id = None
        self.just_restarted = restarted
