"""Configuration loading with fallbacks to well-known environment variables."""

import os

from foreman.config.schema import Config

# Well-known variable names shared with the supervised CLI and its plugins.
_ENV_FALLBACKS = {
    ("classifier", "api_key"): "ANTHROPIC_API_KEY",
    ("classifier", "base_url"): "ANTHROPIC_BASE_URL",
    ("classifier", "model"): "ANTHROPIC_DEFAULT_HAIKU_MODEL",
    ("search", "api_key"): "SEARCH_API_KEY",
    ("search", "api_url"): "SEARCH_API_URL",
    ("search", "model"): "SEARCH_MODEL",
    ("fetch", "account_id"): "CF_ACCOUNT_ID",
    ("fetch", "browser_token"): "CF_BROWSER_TOKEN",
}

DEFAULT_CLASSIFIER_BASE_URL = "https://api.anthropic.com"
DEFAULT_CLASSIFIER_MODEL = "claude-haiku-4-5-20251001"


def load_config(worker_name: str | None = None, **overrides) -> Config:
    """Load config from FOREMAN_* env vars and .env, then apply fallbacks.

    Args:
        worker_name: Explicit worker name; wins over FOREMAN_WORKER_NAME and WORKER_NAME.
        **overrides: Top-level field overrides passed to the settings model.

    Returns:
        The resolved configuration.
    """
    config = Config(**overrides)

    if worker_name:
        config.worker_name = worker_name
    elif not config.worker_name:
        config.worker_name = os.environ.get("WORKER_NAME", "")

    for (section, field), env_name in _ENV_FALLBACKS.items():
        target = getattr(config, section)
        if not getattr(target, field):
            setattr(target, field, os.environ.get(env_name, ""))

    if not config.classifier.base_url:
        config.classifier.base_url = DEFAULT_CLASSIFIER_BASE_URL
    if not config.classifier.model:
        config.classifier.model = DEFAULT_CLASSIFIER_MODEL

    return config
