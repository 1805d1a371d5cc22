"""Append-only history store backed by a JSONL file."""

import json
from pathlib import Path

from loguru import logger

from foreman.history.entries import HistoryEntry, parse_entry

HISTORY_FILENAME = "history.jsonl"


class HistoryStore:
    """
    Ordered, append-only log of history entries.

    The in-memory sequence is the ground truth for the current process
    lifetime; ``history.jsonl`` carries it across restarts. Entries are only
    ever appended, and only ``clear()`` removes them.
    """

    def __init__(self, worker_dir: Path):
        self.worker_dir = worker_dir
        self.path = worker_dir / HISTORY_FILENAME
        self._entries: list[HistoryEntry] = []

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> None:
        """Load prior entries from disk, skipping lines that fail to parse."""
        self.worker_dir.mkdir(parents=True, exist_ok=True)
        entries: list[HistoryEntry] = []
        skipped = 0

        if self.path.exists():
            with open(self.path, "rb") as f:
                for raw in f:
                    raw = raw.strip()
                    if not raw:
                        continue
                    try:
                        data = json.loads(raw.decode("utf-8"))
                    except (UnicodeDecodeError, json.JSONDecodeError):
                        skipped += 1
                        continue
                    entry = parse_entry(data)
                    if entry is None:
                        skipped += 1
                        continue
                    entries.append(entry)

        self._entries = entries
        if skipped:
            logger.warning(f"History: skipped {skipped} malformed line(s) in {self.path}")
        logger.info(f"History: loaded {len(entries)} entries from {self.path}")

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        """Append an entry in memory and, best-effort, to disk."""
        self._entries.append(entry)
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
        except OSError as e:
            # Memory stays correct; only cross-restart durability is lost.
            logger.warning(f"History: failed to persist {entry.type} entry: {e}")
        logger.debug(f"History: appended {entry.type}")
        return entry

    def clear(self) -> None:
        """Drop every entry and truncate the log."""
        self._entries = []
        try:
            self.path.write_text("", encoding="utf-8")
        except OSError as e:
            logger.warning(f"History: failed to truncate {self.path}: {e}")
        logger.info("History: cleared")
