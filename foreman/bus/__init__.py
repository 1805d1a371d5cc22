"""Restart request channel."""

from foreman.bus.events import RestartReason, RestartRequest
from foreman.bus.queue import RestartQueue

__all__ = ["RestartQueue", "RestartReason", "RestartRequest"]
