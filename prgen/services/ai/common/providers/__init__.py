"""Provider factory and lazy loader.

Adapter modules are imported only when a provider is first built. Built
providers are cached per ``(provider, api_key, model)``; concurrent loads of
the same key share one in-flight construction.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from prgen.core.config import Settings, get_settings
from prgen.core.errors import ProviderUnavailableError

from .base import BaseProvider, ProviderConfig, ProviderResult

logger = logging.getLogger(__name__)

__all__ = [
    "PROVIDER_NAMES",
    "DISPLAY_NAMES",
    "BaseProvider",
    "ProviderConfig",
    "ProviderResult",
    "ProviderLoader",
    "build_provider",
]

PROVIDER_NAMES = ("claude", "openai", "gemini", "copilot")

DISPLAY_NAMES: dict[str, str] = {
    "claude": "Claude (Anthropic)",
    "openai": "OpenAI (ChatGPT)",
    "gemini": "Gemini (Google)",
    "copilot": "GitHub Copilot",
}

ProviderFactory = Callable[[ProviderConfig, Settings], Awaitable[BaseProvider]]


async def build_provider(config: ProviderConfig, settings: Settings) -> BaseProvider:
    """Import the adapter module for *config* and construct it."""
    name = config.provider
    kwargs = {
        "timeout_seconds": settings.ai_timeout_seconds,
        "max_tokens": settings.ai_max_tokens,
        "temperature": settings.ai_temperature,
    }

    if name == "claude":
        from .claude import ClaudeProvider

        return ClaudeProvider(config.api_key, config.model, **kwargs)

    if name == "openai":
        from .openai import OpenAIProvider

        return OpenAIProvider(config.api_key, config.model, **kwargs)

    if name == "gemini":
        from .gemini import GeminiProvider

        return GeminiProvider(config.api_key, config.model, **kwargs)

    if name == "copilot":
        from .copilot import CopilotProvider

        return CopilotProvider(config.api_key, config.model, **kwargs)

    raise ProviderUnavailableError(name)


class ProviderLoader:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        factory: ProviderFactory = build_provider,
    ) -> None:
        self._settings = settings or get_settings()
        self._factory = factory
        self._loaded: dict[tuple[str, str, str], BaseProvider] = {}
        self._loading: dict[tuple[str, str, str], asyncio.Task] = {}

    async def load(self, config: ProviderConfig) -> BaseProvider:
        key = config.cache_key

        instance = self._loaded.get(key)
        if instance is not None:
            return instance

        task = self._loading.get(key)
        if task is None:
            task = asyncio.ensure_future(self._build(config, key))
            self._loading[key] = task
        # A cancelled caller must not cancel the construction other callers share.
        return await asyncio.shield(task)

    async def _build(self, config: ProviderConfig, key: tuple[str, str, str]) -> BaseProvider:
        try:
            instance = await self._factory(config, self._settings)
        finally:
            # Failed loads must not block later attempts.
            self._loading.pop(key, None)

        self._loaded[key] = instance
        logger.info("Loaded AI provider %s (model=%s)", config.provider, instance.model)
        return instance

    def is_loaded(self, config: ProviderConfig) -> bool:
        return config.cache_key in self._loaded

    def get_loaded(self, config: ProviderConfig) -> Optional[BaseProvider]:
        return self._loaded.get(config.cache_key)

    def clear(self) -> None:
        self._loaded.clear()
        self._loading.clear()
