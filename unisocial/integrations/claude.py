"""
Claude API Integration

Minimal Anthropic Messages API client used for caption and idea
suggestions, plus the tolerant JSON extraction the prompts rely on.
"""

import json
import re
from typing import Any, Optional

import httpx

from unisocial.config.settings import get_settings
from unisocial.integrations.http import VendorClient
from unisocial.utils.error_handling import ClaudeAPIError

ANTHROPIC_VERSION = "2023-06-01"

_FENCE_RE = re.compile(r"```json\n?|```\n?")


class ClaudeClient(VendorClient):
    """Anthropic Messages API client."""

    service = "claude"
    error_class = ClaudeAPIError

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        super().__init__("https://api.anthropic.com/v1", transport=transport, timeout=60.0)
        self.api_key = settings.anthropic_api_key if api_key is None else api_key
        self.model = model or settings.claude_model

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self):
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    async def complete(self, prompt: str, max_tokens: int = 1024) -> str:
        """Send a single-turn prompt and return the first text block."""
        data = await self._request(
            "POST",
            "/messages",
            "messages",
            json={
                "model": self.model,
                "max_tokens": max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        content = data.get("content") or []
        if content and isinstance(content[0], dict):
            return content[0].get("text", "")
        return ""


def parse_json_reply(text: str) -> Any:
    """
    Parse a model reply that should be JSON.

    Markdown code fences are stripped first.

    Raises:
        ValueError: If the reply is not valid JSON
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    return json.loads(cleaned)
