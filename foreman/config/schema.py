"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_SESSION_SIZE = 400 * 1024  # 400KB


class ClassifierConfig(BaseModel):
    """Cheap chat-completions model used for topic-change detection and extraction."""
    api_key: str = ""  # Falls back to ANTHROPIC_API_KEY
    base_url: str = ""  # Falls back to ANTHROPIC_BASE_URL
    model: str = ""  # Falls back to ANTHROPIC_DEFAULT_HAIKU_MODEL
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class WorkerConfig(BaseModel):
    """Mini-goal worker configuration."""
    max_turns: int = 50
    context_pairs: int = 5  # Prior mini goals injected on cold start
    disallowed_tools: list[str] = Field(default_factory=lambda: [
        "AskUserQuestion",
        "WebFetch",
        "WebSearch",
        "mcp__foreman__mini-goal-worker",
        "mcp__foreman__web-search",
        "mcp__foreman__web-fetch",
    ])


class SearchConfig(BaseModel):
    """Web search tool configuration."""
    api_key: str = ""  # Falls back to SEARCH_API_KEY
    api_url: str = ""  # Falls back to SEARCH_API_URL
    model: str = ""  # Falls back to SEARCH_MODEL

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.api_url and self.model)


class FetchConfig(BaseModel):
    """Web fetch tool configuration (Cloudflare Browser Rendering)."""
    account_id: str = ""  # Falls back to CF_ACCOUNT_ID
    browser_token: str = ""  # Falls back to CF_BROWSER_TOKEN
    timeout: float = 90.0

    @property
    def enabled(self) -> bool:
        return bool(self.account_id and self.browser_token)


class Config(BaseSettings):
    """Root configuration for foreman."""
    worker_name: str = ""  # Falls back to WORKER_NAME
    claude_command: str = "claude"
    workers_root: str = "~/.claude/mini-goal-workers"
    projects_root: str = "~/.claude/projects"
    max_session_size: int = MAX_SESSION_SIZE
    restart_grace_seconds: float = 0.2
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)

    model_config = SettingsConfigDict(
        env_prefix="FOREMAN_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    @property
    def worker_dir(self) -> Path:
        """Per-worker state directory (history, session id, logs)."""
        return Path(self.workers_root).expanduser() / self.worker_name

    @property
    def projects_path(self) -> Path:
        """Root of the directory tree holding session log files."""
        return Path(self.projects_root).expanduser()
