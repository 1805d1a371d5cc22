"""Conversation history: entries, durable store, recent window, compression."""

from foreman.history.compressor import PromptCompressor
from foreman.history.recent import RecentHistory
from foreman.history.store import HistoryStore

__all__ = ["HistoryStore", "PromptCompressor", "RecentHistory"]
