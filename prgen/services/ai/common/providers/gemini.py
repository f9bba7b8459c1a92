"""Google Gemini REST provider.

Uses the non-streaming ``generateContent`` endpoint only; streaming callers
get the response replayed word by word by ``BaseProvider.generate_stream``.
"""

from __future__ import annotations

from typing import Any

from prgen.core.errors import ProviderResponseError

from .base import BaseProvider


class GeminiProvider(BaseProvider):
    name = "gemini"
    display_name = "Gemini (Google)"
    default_model = "gemini-1.5-pro"
    base_url = "https://generativelanguage.googleapis.com/v1beta"

    def headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._api_key}

    def api_url(self, *, stream: bool = False) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_request_body(self, prompt: str, *, stream: bool = False) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }

    def extract_content(self, data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        text = ""
        if candidates and isinstance(candidates[0], dict):
            parts = (candidates[0].get("content") or {}).get("parts") or []
            if parts and isinstance(parts[0], dict):
                text = parts[0].get("text") or ""
        if not text:
            raise ProviderResponseError("No content received from Gemini API", provider=self.name)
        return text
