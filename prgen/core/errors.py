"""Exception hierarchy shared by the provider, retry and parsing layers."""

from __future__ import annotations

from typing import Sequence


class PRGenError(Exception):
    """Base class for every error raised by prgen."""


class ConfigurationError(PRGenError):
    """No provider credential could be resolved."""

    def __init__(self, message: str, *, env_vars: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.env_vars = tuple(env_vars)


class ProviderUnavailableError(PRGenError):
    """A provider was requested that was not discovered (or is unknown)."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Provider {provider} not available")
        self.provider = provider


class ProviderSelectionRequired(PRGenError):
    """Several providers are configured and nothing chose between them."""

    def __init__(self, candidates: Sequence) -> None:
        names = ", ".join(c.name for c in candidates)
        super().__init__(f"Multiple AI providers available ({names}); a selection is required")
        self.candidates = tuple(candidates)


class NoContentError(PRGenError):
    """The provider response carried no content at all."""


class ProviderError(PRGenError):
    """Provider failed to return a valid generation."""

    def __init__(self, message: str, *, provider: str = "") -> None:
        super().__init__(message)
        self.provider = provider


class ProviderHTTPError(ProviderError):
    def __init__(self, message: str, *, provider: str = "", status_code: int) -> None:
        super().__init__(message, provider=provider)
        self.status_code = status_code


class ProviderAuthError(ProviderHTTPError):
    """401 from the provider API."""


class ProviderPermissionError(ProviderHTTPError):
    """403 from the provider API."""


class ProviderTimeoutError(ProviderError):
    pass


class ProviderConnectionError(ProviderError):
    """Transport failure before a response arrived (reset, DNS, refused)."""


class ProviderResponseError(ProviderError):
    """The response body did not contain the expected text field."""
