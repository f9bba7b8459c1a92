import pytest

from prgen.core.config import Settings, get_settings

CREDENTIAL_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "CLAUDE_API_KEY",
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "COPILOT_API_TOKEN",
    "GITHUB_TOKEN",
    "AI_PROVIDERS_CONFIG",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # Real credentials in the developer's shell (or a local .env) must not
    # leak into provider discovery.
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


@pytest.fixture
def settings_factory():
    return make_settings
