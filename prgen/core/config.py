from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_section_value(value) -> dict:
    if value is None:
        return {}
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"AI_PROVIDERS_CONFIG is not valid JSON: {exc}") from exc
        value = parsed
    if not isinstance(value, dict):
        raise ValueError("AI_PROVIDERS_CONFIG must be a JSON object keyed by provider name")
    # Null entries ({"apiToken": null}) mean "not set".
    return {
        str(name).lower().strip(): {
            str(key): str(item) for key, item in section.items() if item is not None
        }
        for name, section in value.items()
        if isinstance(section, dict)
    }


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
    )
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("OPENAI_API_KEY"),
    )
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    copilot_api_token: str = Field(
        default="",
        validation_alias=AliasChoices("COPILOT_API_TOKEN", "GITHUB_TOKEN"),
    )

    # Structured per-provider section: {"claude": {"apiKey": "...", "model": "..."}}.
    ai_providers: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("AI_PROVIDERS_CONFIG"),
    )

    ai_timeout_seconds: float = Field(
        default=300.0,
        validation_alias=AliasChoices("AI_TIMEOUT_SECONDS"),
    )
    ai_max_tokens: int = Field(
        default=4000,
        validation_alias=AliasChoices("AI_MAX_TOKENS"),
    )
    ai_temperature: float = Field(
        default=0.7,
        validation_alias=AliasChoices("AI_TEMPERATURE"),
    )

    ai_retry_max_attempts: int = Field(
        default=3,
        validation_alias=AliasChoices("AI_RETRY_MAX_ATTEMPTS"),
    )
    ai_retry_initial_delay_seconds: float = Field(
        default=1.0,
        validation_alias=AliasChoices("AI_RETRY_INITIAL_DELAY_SECONDS"),
    )
    ai_retry_max_delay_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("AI_RETRY_MAX_DELAY_SECONDS"),
    )

    github_base_url: str = Field(
        default="https://github.com",
        validation_alias=AliasChoices("GITHUB_BASE_URL"),
    )
    default_branch: str = Field(
        default="main",
        validation_alias=AliasChoices("DEFAULT_BRANCH"),
    )

    @field_validator("ai_providers", mode="before")
    @classmethod
    def _parse_providers_section(cls, value):
        return _parse_section_value(value)

    @field_validator(
        "anthropic_api_key",
        "openai_api_key",
        "gemini_api_key",
        "copilot_api_token",
        mode="before",
    )
    @classmethod
    def _strip_credential(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("ai_retry_max_attempts")
    @classmethod
    def _attempts_positive(cls, value: int) -> int:
        if value < 1:
            msg = f"AI_RETRY_MAX_ATTEMPTS must be >= 1, got {value}"
            raise ValueError(msg)
        return value

    def provider_section(self, name: str) -> dict[str, str]:
        return self.ai_providers.get(name, {})


@lru_cache

def get_settings() -> Settings:
    return Settings()
