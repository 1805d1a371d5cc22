"""Web tools: search via a Responses-style endpoint, fetch via Browser Rendering."""

import json
from typing import Any

import httpx
from loguru import logger

from foreman.config.schema import ClassifierConfig, FetchConfig, SearchConfig
from foreman.tools.base import Tool, ToolResult

CF_MARKDOWN_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/browser-rendering/markdown"
PAGE_LOAD_TIMEOUT_MS = 60000

EXTRACT_SYSTEM_PROMPT = (
    "You extract information from web pages. Return only the parts of the page "
    "that are relevant to the instruction, quoted or lightly condensed. If "
    "nothing on the page is relevant, answer exactly: not found"
)


class WebSearchTool(Tool):
    """Search the web through a model with a built-in web_search tool."""

    name = "web-search"
    description = (
        "Search the web. Returns a written answer with sources, based on live "
        "search results."
    )
    parameters = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "A search query in natural language"},
        },
        "required": ["query"],
    }

    def __init__(self, config: SearchConfig):
        self.config = config

    async def execute(self, query: str, **kwargs: Any) -> ToolResult:
        logger.info(f"Web search: {query}")
        try:
            async with httpx.AsyncClient(timeout=120.0) as client:
                response = await client.post(
                    self.config.api_url,
                    headers={"Authorization": f"Bearer {self.config.api_key}"},
                    json={
                        "model": self.config.model,
                        "input": [{"role": "user", "content": query}],
                        "tools": [{"type": "web_search"}],
                    },
                )
                result = response.json()
        except Exception as e:
            logger.error(f"Web search error: {e}")
            return ToolResult(text=f"Search failed: {e}", is_error=True)

        if result.get("error"):
            error = result["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            logger.warning(f"Web search API error: {message}")
            return ToolResult(text=f"Search API error: {message}", is_error=True)

        output = result.get("output") or []
        text = ""
        for item in output:
            if item.get("type") != "message":
                continue
            for part in item.get("content") or []:
                if part.get("type") == "output_text":
                    text = part.get("text", "")
                    break
            break

        text = text or json.dumps(output, ensure_ascii=False)
        logger.debug(f"Web search result: {len(text)} chars")
        return ToolResult(text=text)


class WebFetchTool(Tool):
    """Fetch a page as markdown, optionally narrowed to what a prompt asks for."""

    name = "web-fetch"
    description = (
        "Fetch a web page (rendered in a real browser) and return it as markdown. "
        "Pass a prompt to get back only the part of the page relevant to it."
    )
    parameters = {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "The URL to fetch"},
            "prompt": {
                "type": "string",
                "description": "Optional: what to extract from the page",
            },
        },
        "required": ["url"],
    }

    def __init__(self, config: FetchConfig, classifier: ClassifierConfig):
        self.config = config
        self.classifier = classifier

    async def execute(self, url: str, prompt: str | None = None, **kwargs: Any) -> ToolResult:
        logger.info(f"Web fetch: {url} (prompt={prompt!r})")
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.post(
                    CF_MARKDOWN_URL.format(account_id=self.config.account_id),
                    headers={"Authorization": f"Bearer {self.config.browser_token}"},
                    json={"url": url, "gotoOptions": {"timeout": PAGE_LOAD_TIMEOUT_MS}},
                )
                result = response.json()
        except Exception as e:
            logger.error(f"Web fetch error: {e}")
            return ToolResult(text=f"Web fetch failed: {e}", is_error=True)

        if not result.get("success"):
            errors = json.dumps(result.get("errors") or result, ensure_ascii=False)
            logger.warning(f"Web fetch: Cloudflare error: {errors}")
            return ToolResult(text=f"Cloudflare Browser Rendering error: {errors}", is_error=True)

        markdown = result.get("result") or ""
        logger.debug(f"Web fetch: {len(markdown)} chars of markdown")

        if not prompt:
            return ToolResult(text=markdown or "(empty page)")

        try:
            extracted = await self._extract(markdown, prompt)
        except Exception as e:
            logger.warning(f"Web fetch: extraction failed: {e}")
            return ToolResult(
                text=f"[Extraction failed: {e}. Returning raw markdown.]\n\n{markdown or '(empty page)'}"
            )
        return ToolResult(text=extracted or "(empty result)")

    async def _extract(self, markdown: str, prompt: str) -> str:
        if not self.classifier.enabled:
            raise RuntimeError("no classifier API key configured")

        async with httpx.AsyncClient(timeout=120.0) as client:
            response = await client.post(
                f"{self.classifier.base_url.rstrip('/')}/v1/chat/completions",
                headers={"Authorization": f"Bearer {self.classifier.api_key}"},
                json={
                    "model": self.classifier.model,
                    "max_tokens": 4096,
                    "messages": [
                        {"role": "system", "content": EXTRACT_SYSTEM_PROMPT},
                        {
                            "role": "user",
                            "content": f"Instruction: {prompt}\n\nPage:\n---\n{markdown}\n---",
                        },
                    ],
                },
            )
            response.raise_for_status()
            data = response.json()

        text = (data["choices"][0]["message"]["content"] or "").strip()
        logger.debug(f"Web fetch: extracted {len(text)} chars")
        return text
