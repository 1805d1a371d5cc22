"""HTTP surface for hooks and tools."""

from foreman.server.app import ForemanServer
from foreman.server.hooks import HookHandlers, HookResult

__all__ = ["ForemanServer", "HookHandlers", "HookResult"]
