"""GitHub Copilot provider (OpenAI-compatible API)."""

from __future__ import annotations

from .openai import OpenAIProvider


class CopilotProvider(OpenAIProvider):
    name = "copilot"
    display_name = "GitHub Copilot"
    default_model = "gpt-4o"
    base_url = "https://api.githubcopilot.com"
