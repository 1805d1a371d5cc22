"""Session registry: persisted worker session id and session log lookup."""

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

SESSION_ID_FILENAME = "session-id"


@dataclass(frozen=True)
class SessionRecord:
    """A session id resolved to its on-disk log."""

    session_id: str
    path: Path
    size_bytes: int


class SessionLogCache:
    """Remembers the last resolved log path for one session id."""

    def __init__(self) -> None:
        self._session_id: str | None = None
        self._path: Path | None = None

    def get(self, session_id: str) -> Path | None:
        if self._session_id == session_id:
            return self._path
        return None

    def put(self, session_id: str, path: Path) -> None:
        self._session_id = session_id
        self._path = path

    def invalidate(self) -> None:
        self._session_id = None
        self._path = None


class SessionRegistry:
    """
    Maps external session ids to the log files the assistant CLI writes.

    Layout:
        {worker_dir}/session-id             # worker sub-session id
        {projects_root}/{project}/{id}.jsonl  # session logs (not ours)
    """

    def __init__(self, worker_dir: Path, projects_root: Path):
        self.worker_dir = worker_dir
        self.projects_root = projects_root
        self.session_file = worker_dir / SESSION_ID_FILENAME
        self._cache = SessionLogCache()

    def read_id(self) -> str | None:
        """Read the persisted worker session id."""
        try:
            session_id = self.session_file.read_text(encoding="utf-8").strip() or None
        except OSError:
            logger.debug("Session: no session id found")
            return None
        logger.debug(f"Session: read session id {session_id}")
        return session_id

    def save(self, session_id: str) -> None:
        """Persist a worker session id."""
        self.worker_dir.mkdir(parents=True, exist_ok=True)
        self.session_file.write_text(session_id, encoding="utf-8")
        self._cache.invalidate()
        logger.info(f"Session: saved session id {session_id}")

    def delete(self) -> None:
        """Forget the worker session id."""
        self.session_file.unlink(missing_ok=True)
        self._cache.invalidate()
        logger.info("Session: deleted session id")

    def find_log(self, session_id: str) -> SessionRecord | None:
        """Resolve *session_id* to its log file and current size.

        Tries the cached path first; otherwise scans each immediate
        subdirectory of the projects root. Filesystem errors mean "not found".
        """
        cached = self._cache.get(session_id)
        if cached is not None:
            record = self._stat(session_id, cached)
            if record:
                return record
            self._cache.invalidate()

        filename = f"{session_id}.jsonl"
        try:
            project_dirs = sorted(self.projects_root.iterdir())
        except OSError:
            logger.debug(f"Session: projects root {self.projects_root} not readable")
            return None

        for project_dir in project_dirs:
            record = self._stat(session_id, project_dir / filename)
            if record:
                self._cache.put(session_id, record.path)
                logger.debug(f"Session: found log {record.path} ({record.size_bytes} bytes)")
                return record

        logger.debug(f"Session: log not found for {session_id}")
        return None

    @staticmethod
    def _stat(session_id: str, path: Path) -> SessionRecord | None:
        try:
            if not path.is_file():
                return None
            return SessionRecord(session_id=session_id, path=path, size_bytes=path.stat().st_size)
        except OSError:
            return None
