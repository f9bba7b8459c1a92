"""AI provider manager: discovery, sticky selection and generation.

Discovery resolves credentials once, at construction:
  1. structured section ``settings.ai_providers[<name>]`` (``apiKey`` /
     ``apiToken`` and ``model``),
  2. legacy environment variables (see ``ENV_KEYS``), read through
     ``Settings`` aliases.

Nothing is imported or constructed until a generation call needs it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from prgen.core.config import Settings, get_settings
from prgen.core.errors import (
    ConfigurationError,
    ProviderSelectionRequired,
    ProviderUnavailableError,
)
from prgen.utils.metrics import PerformanceMonitor

from .providers import DISPLAY_NAMES, PROVIDER_NAMES, ProviderConfig, ProviderLoader
from .providers.base import BaseProvider, ChunkCallback

logger = logging.getLogger(__name__)

ENV_KEYS: dict[str, tuple[str, ...]] = {
    "claude": ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "copilot": ("COPILOT_API_TOKEN", "GITHUB_TOKEN"),
}

_SETTINGS_FIELDS = {
    "claude": "anthropic_api_key",
    "openai": "openai_api_key",
    "gemini": "gemini_api_key",
    "copilot": "copilot_api_token",
}


@dataclass(frozen=True)
class ProviderChoice:
    """One entry of the list shown to whoever picks between providers."""

    name: str
    display_name: str


ProviderChooser = Callable[[Sequence[ProviderChoice]], Awaitable[str]]


def discover_providers(settings: Settings) -> list[ProviderConfig]:
    """Return a ``ProviderConfig`` for every provider with a usable credential."""
    found: list[ProviderConfig] = []
    for name in PROVIDER_NAMES:
        section = settings.provider_section(name)
        credential = (
            str(section.get("apiKey") or section.get("apiToken") or "").strip()
            or getattr(settings, _SETTINGS_FIELDS[name])
        )
        if not credential:
            continue
        model = str(section.get("model") or "").strip() or None
        found.append(ProviderConfig(provider=name, api_key=credential, model=model))
    logger.debug("Discovered AI providers: %s", [c.provider for c in found])
    return found


class AIProviderManager:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        loader: ProviderLoader | None = None,
        chooser: ProviderChooser | None = None,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._loader = loader or ProviderLoader(self._settings)
        self._chooser = chooser
        self._monitor = monitor
        self._available = discover_providers(self._settings)
        self._selected: Optional[str] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def selected_provider(self) -> Optional[str]:
        return self._selected

    def get_available_providers(self) -> list[str]:
        return [config.provider for config in self._available]

    def has_provider(self, provider: str) -> bool:
        return any(config.provider == provider for config in self._available)

    @staticmethod
    def get_display_name(provider: str) -> str:
        return DISPLAY_NAMES.get(provider, provider)

    def choices(self) -> list[ProviderChoice]:
        return [
            ProviderChoice(name=config.provider, display_name=self.get_display_name(config.provider))
            for config in self._available
        ]

    async def select_provider(self) -> str:
        """Pick the provider for this session; later calls return the same one."""
        if self._selected:
            return self._selected

        if not self._available:
            env_vars = [var for name in PROVIDER_NAMES for var in ENV_KEYS[name]]
            raise ConfigurationError(
                "No AI providers configured. Please set one of: " + ", ".join(env_vars) + ".",
                env_vars=env_vars,
            )

        if len(self._available) == 1:
            self._selected = self._available[0].provider
            logger.info("Using the only configured AI provider: %s", self._selected)
            return self._selected

        candidates = self.choices()
        if self._chooser is None:
            raise ProviderSelectionRequired(candidates)

        picked = await self._chooser(candidates)
        if not self.has_provider(picked):
            raise ProviderUnavailableError(picked)
        self._selected = picked
        logger.info("Selected AI provider: %s", picked)
        return picked

    async def _resolve(self, provider: Optional[str]) -> BaseProvider:
        name = provider or await self.select_provider()
        config = next((c for c in self._available if c.provider == name), None)
        if config is None:
            raise ProviderUnavailableError(name)
        return await self._loader.load(config)

    async def generate_content(self, prompt: str, provider: Optional[str] = None) -> str:
        ai_provider = await self._resolve(provider)
        if self._monitor is None:
            result = await ai_provider.generate(prompt)
        else:
            result = await self._monitor.measure(
                f"ai.generate.{ai_provider.name}",
                lambda: ai_provider.generate(prompt),
                {"model": ai_provider.model, "stream": False},
            )
        return result.content

    async def generate_content_stream(
        self,
        prompt: str,
        provider: Optional[str] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> str:
        """Generate with incremental delivery to *on_chunk*; returns the full text."""
        ai_provider = await self._resolve(provider)
        if self._monitor is None:
            result = await ai_provider.generate_stream(prompt, on_chunk)
        else:
            result = await self._monitor.measure(
                f"ai.generate.{ai_provider.name}",
                lambda: ai_provider.generate_stream(prompt, on_chunk),
                {"model": ai_provider.model, "stream": True},
            )
        return result.content
