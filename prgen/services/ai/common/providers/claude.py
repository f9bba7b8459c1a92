"""Anthropic / Claude provider."""

from __future__ import annotations

import logging
from typing import Any, Optional

from prgen.core.errors import ProviderResponseError

from .base import BaseProvider

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeProvider(BaseProvider):
    name = "claude"
    display_name = "Claude (Anthropic)"
    default_model = "claude-sonnet-4-20250514"
    supports_streaming = True
    base_url = "https://api.anthropic.com"

    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def api_url(self, *, stream: bool = False) -> str:
        return f"{self.base_url}/v1/messages"

    def build_request_body(self, prompt: str, *, stream: bool = False) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if stream:
            body["stream"] = True
        return body

    def extract_content(self, data: dict[str, Any]) -> str:
        blocks = data.get("content") or []
        text = ""
        if blocks and isinstance(blocks[0], dict):
            text = blocks[0].get("text") or ""
        if not text:
            logger.warning("Claude response had no text block (stop_reason=%s)", data.get("stop_reason"))
            raise ProviderResponseError("No content received from Claude API", provider=self.name)
        return text

    def extract_stream_delta(self, event: dict[str, Any]) -> Optional[str]:
        if event.get("type") != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        if delta.get("type") != "text_delta":
            return None
        return delta.get("text")
