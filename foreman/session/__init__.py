"""Session id persistence and session log lookup."""

from foreman.session.registry import SessionRecord, SessionRegistry

__all__ = ["SessionRecord", "SessionRegistry"]
