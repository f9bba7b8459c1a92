"""OpenAI provider (chat completions)."""

from __future__ import annotations

import logging
from typing import Any, Optional

from prgen.core.errors import ProviderResponseError

from .base import BaseProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    name = "openai"
    display_name = "OpenAI (ChatGPT)"
    default_model = "gpt-4o"
    supports_streaming = True
    base_url = "https://api.openai.com/v1"

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def api_url(self, *, stream: bool = False) -> str:
        return f"{self.base_url}/chat/completions"

    def build_request_body(self, prompt: str, *, stream: bool = False) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if stream:
            body["stream"] = True
        return body

    def extract_content(self, data: dict[str, Any]) -> str:
        choices = data.get("choices") or []
        first = choices[0] if choices and isinstance(choices[0], dict) else {}
        text = (first.get("message") or {}).get("content") or ""
        if not text:
            logger.warning(
                "%s response had no message content (finish_reason=%s)",
                self.name,
                first.get("finish_reason"),
            )
            raise ProviderResponseError(
                f"No content received from {self.display_name} API",
                provider=self.name,
            )
        return text

    def extract_stream_delta(self, event: dict[str, Any]) -> Optional[str]:
        choices = event.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        return (choices[0].get("delta") or {}).get("content")
