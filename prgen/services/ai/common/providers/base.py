"""Abstract base for all AI providers.

A provider turns one prompt string into one completion string over plain
HTTP. Subclasses only describe the wire shape (URL, headers, request body,
where the text lives in the response); sending, timing, streaming and error
translation live here.
"""

from __future__ import annotations

import abc
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

import httpx

from prgen.core.errors import (
    ProviderAuthError,
    ProviderConnectionError,
    ProviderError,
    ProviderHTTPError,
    ProviderPermissionError,
    ProviderResponseError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]

DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7

_WORD_CHUNK_RE = re.compile(r"\S+\s*|\s+")


@dataclass(frozen=True)
class ProviderConfig:
    """A discovered provider: name, credential and optional model override."""

    provider: str
    api_key: str
    model: Optional[str] = None

    @property
    def cache_key(self) -> tuple[str, str, str]:
        return (self.provider, self.api_key, self.model or "")

    def __repr__(self) -> str:
        # Never print the credential.
        return f"ProviderConfig(provider={self.provider!r}, model={self.model!r})"


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    content: str
    provider: str
    model: str
    latency_ms: float = 0.0


def word_chunks(text: str) -> list[str]:
    """Split *text* into word-sized pieces whose concatenation is *text*."""
    return _WORD_CHUNK_RE.findall(text)


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement."""

    name: str = "base"
    display_name: str = "Base"
    default_model: str = ""
    supports_streaming: bool = False

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.model = model or self.default_model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._transport = transport

    @abc.abstractmethod
    def headers(self) -> dict[str, str]:
        ...

    @abc.abstractmethod
    def api_url(self, *, stream: bool = False) -> str:
        ...

    @abc.abstractmethod
    def build_request_body(self, prompt: str, *, stream: bool = False) -> dict[str, Any]:
        ...

    @abc.abstractmethod
    def extract_content(self, data: dict[str, Any]) -> str:
        """Pull the completion text out of a decoded response body."""

    def extract_stream_delta(self, event: dict[str, Any]) -> Optional[str]:
        """Text carried by one server-sent event, or ``None``."""
        return None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self._transport,
            headers={"Content-Type": "application/json", **self.headers()},
        )

    async def generate(self, prompt: str) -> ProviderResult:
        """Send *prompt* and return a ``ProviderResult``."""
        t0 = time.monotonic()
        try:
            async with self._client() as client:
                resp = await client.post(self.api_url(), json=self.build_request_body(prompt))
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise self._translate_error(exc) from exc
        except ValueError as exc:
            raise ProviderResponseError(
                f"{self.name} API returned a non-JSON response",
                provider=self.name,
            ) from exc

        if not isinstance(data, dict):
            raise ProviderResponseError(
                f"{self.name} API returned a {type(data).__name__} instead of a JSON object",
                provider=self.name,
            )
        content = self.extract_content(data)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            content=content,
            provider=self.name,
            model=self.model,
            latency_ms=round(elapsed, 2),
        )

    async def generate_stream(
        self,
        prompt: str,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> ProviderResult:
        """Like ``generate`` but hands text to *on_chunk* as it arrives.

        Providers without native streaming replay the full response word by
        word, so callers see the same chunk contract either way.
        """
        if not self.supports_streaming:
            result = await self.generate(prompt)
            if on_chunk is not None:
                for chunk in word_chunks(result.content):
                    on_chunk(chunk)
            return result

        t0 = time.monotonic()
        parts: list[str] = []
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    self.api_url(stream=True),
                    json=self.build_request_body(prompt, stream=True),
                ) as resp:
                    if resp.status_code >= 400:
                        await resp.aread()
                    resp.raise_for_status()
                    async for event in self._iter_events(resp):
                        delta = self.extract_stream_delta(event)
                        if delta:
                            parts.append(delta)
                            if on_chunk is not None:
                                on_chunk(delta)
        except httpx.HTTPError as exc:
            raise self._translate_error(exc) from exc

        content = "".join(parts)
        if not content:
            raise ProviderResponseError(
                f"No content received from {self.display_name} API",
                provider=self.name,
            )
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            content=content,
            provider=self.name,
            model=self.model,
            latency_ms=round(elapsed, 2),
        )

    async def _iter_events(self, resp: httpx.Response) -> AsyncIterator[dict[str, Any]]:
        async for line in resp.aiter_lines():
            if not line.startswith("data:"):
                continue
            payload = line[len("data:"):].strip()
            if not payload:
                continue
            if payload == "[DONE]":
                break
            try:
                event = json.loads(payload)
            except json.JSONDecodeError:
                logger.warning("%s: skipping undecodable stream event", self.name)
                continue
            if isinstance(event, dict):
                yield event

    def _translate_error(self, exc: httpx.HTTPError) -> ProviderError:
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            if status == 401:
                return ProviderAuthError(
                    f"Authentication failed for {self.name}. Please check your API key.",
                    provider=self.name,
                    status_code=status,
                )
            if status == 403:
                return ProviderPermissionError(
                    f"Permission denied for {self.name}. Check that your key can use model {self.model}.",
                    provider=self.name,
                    status_code=status,
                )
            if status == 429:
                return ProviderHTTPError(
                    f"Rate limit exceeded for {self.name}. Please try again later.",
                    provider=self.name,
                    status_code=status,
                )
            if status >= 500:
                return ProviderHTTPError(
                    f"{self.name} API server error ({status}). Please try again later.",
                    provider=self.name,
                    status_code=status,
                )
            return ProviderHTTPError(
                f"{self.name} API error: {_error_message(exc.response) or exc}",
                provider=self.name,
                status_code=status,
            )
        if isinstance(exc, httpx.TimeoutException):
            return ProviderTimeoutError(f"{self.name} API timeout. Please try again.", provider=self.name)
        if isinstance(exc, httpx.TransportError):
            return ProviderConnectionError(f"{self.name} API connection failed: {exc}", provider=self.name)
        return ProviderError(f"{self.name} API error: {exc}", provider=self.name)


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text.strip()
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return ""
