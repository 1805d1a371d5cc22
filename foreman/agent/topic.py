"""Topic-change detection via a small chat-completions classifier."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from foreman.config.schema import ClassifierConfig
from foreman.history.recent import RecentHistory
from foreman.prompts.topic import TOPIC_CLASSIFIER_PROMPT

# Below roughly 1024 tokens most providers refuse to cache a prefix.
CACHE_MIN_CHARS = 4000


class TopicDetector:
    """Asks a cheap model whether a new instruction starts a fresh topic."""

    def __init__(self, config: ClassifierConfig):
        self.config = config

    def build_messages(self, prompt: str, transcript: str) -> list[dict[str, Any]]:
        history_text = f"<history>\n{transcript}\n</history>"
        new_text = f"<new_message>\n{prompt}\n</new_message>"

        if len(transcript) <= CACHE_MIN_CHARS:
            return [
                {"role": "system", "content": TOPIC_CLASSIFIER_PROMPT},
                {"role": "user", "content": f"{history_text}\n\n{new_text}"},
            ]

        ephemeral = {"type": "ephemeral"}
        return [
            {
                "role": "system",
                "content": [
                    {"type": "text", "text": TOPIC_CLASSIFIER_PROMPT, "cache_control": ephemeral},
                ],
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": history_text, "cache_control": ephemeral},
                    {"type": "text", "text": new_text},
                ],
            },
        ]

    async def detect(self, prompt: str, window: RecentHistory) -> bool | None:
        """Return True for a new topic, False for a continuation, None for no signal.

        Never raises: missing credentials, an empty transcript and any
        transport or decoding failure all yield None.
        """
        transcript = window.transcript()
        if not self.config.enabled:
            logger.debug("Topic detect skipped: no classifier API key")
            return None
        if not transcript:
            logger.debug("Topic detect skipped: no conversation history")
            return None

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.post(
                    f"{self.config.base_url.rstrip('/')}/v1/chat/completions",
                    headers={"Authorization": f"Bearer {self.config.api_key}"},
                    json={
                        "model": self.config.model,
                        "max_tokens": 10,
                        "messages": self.build_messages(prompt, transcript),
                    },
                )
                response.raise_for_status()
                result = response.json()

            answer = (result["choices"][0]["message"]["content"] or "").strip()
            is_new_topic = answer == "Y"
            self._log_usage(prompt, answer, is_new_topic, result.get("usage"))
        except httpx.HTTPStatusError as e:
            logger.warning(f"Topic detect: classifier API {e.response.status_code}: {e.response.text[:200]}")
            return None
        except Exception as e:
            logger.warning(f"Topic detect error: {e}")
            return None

        return is_new_topic

    @staticmethod
    def _log_usage(prompt: str, answer: str, is_new_topic: bool, usage: Any) -> None:
        usage = usage if isinstance(usage, dict) else {}
        details = usage.get("prompt_tokens_details")
        cached = details.get("cached_tokens") if isinstance(details, dict) else None
        logger.debug(
            f"Topic detect: prompt={prompt[:100]!r} answer={answer} new_topic={is_new_topic} "
            f"usage: prompt={usage.get('prompt_tokens')} completion={usage.get('completion_tokens')}"
            + (f" cached={cached}" if cached is not None else "")
        )
