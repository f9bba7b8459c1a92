"""Retry with exponential backoff and jitter for async operations.

``retry`` runs a zero-argument coroutine function until it succeeds or the
policy gives up. ``with_retry`` wraps any coroutine function once so every
call goes through the same policy. ``is_retryable_error`` is the usual
building block for ``RetryPolicy.should_retry``.
"""

from __future__ import annotations

import asyncio
import errno
import functools
import logging
import random
import socket
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from prgen.core.config import Settings
from prgen.core.errors import (
    ProviderConnectionError,
    ProviderHTTPError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_JITTER = (0.9, 1.1)

_RETRYABLE_ERRNOS = frozenset({errno.ECONNRESET, errno.ETIMEDOUT, errno.ECONNREFUSED})

# Patched in tests to observe delays without waiting.
_sleep = asyncio.sleep


def _always_retry(error: BaseException, attempt: int) -> bool:
    return True


def _ignore_retry(error: BaseException, attempt: int, delay: float) -> None:
    return None


@dataclass(frozen=True)
class RetryPolicy:
    """Per-call retry configuration. Delays are in seconds."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: tuple[float, float] = DEFAULT_JITTER
    should_retry: Callable[[BaseException, int], bool] = _always_retry
    on_retry: Callable[[BaseException, int, float], None] = _ignore_retry

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "RetryPolicy":
        policy = cls(
            max_attempts=settings.ai_retry_max_attempts,
            initial_delay=settings.ai_retry_initial_delay_seconds,
            max_delay=settings.ai_retry_max_delay_seconds,
            should_retry=lambda error, attempt: is_retryable_error(error),
        )
        return replace(policy, **overrides) if overrides else policy

    def compute_delay(self, attempt: int) -> float:
        """Backoff for the wait after failed ``attempt`` (1-based), jitter included."""
        nominal = min(self.max_delay, self.initial_delay * self.backoff_multiplier ** (attempt - 1))
        low, high = self.jitter
        return nominal * random.uniform(low, high)


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
) -> T:
    """Await ``operation()`` until it succeeds or ``policy`` gives up.

    The error raised on give-up is the exact object the operation raised.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if not policy.should_retry(exc, attempt):
                raise
            if attempt >= policy.max_attempts:
                raise
            delay = policy.compute_delay(attempt)
            policy.on_retry(exc, attempt, delay)
            await _sleep(delay)


def with_retry(
    policy: RetryPolicy | None,
    fn: Callable[..., Awaitable[T]],
    *,
    name: str | None = None,
) -> Callable[..., Awaitable[T]]:
    """Wrap coroutine function ``fn`` so each call is retried under ``policy``."""
    policy = policy or RetryPolicy()
    op_name = name or getattr(fn, "__qualname__", None) or repr(fn)

    def _log_and_forward(error: BaseException, attempt: int, delay: float) -> None:
        logger.warning(
            "Retrying %s (attempt %d) after %.2fs due to: %s",
            op_name,
            attempt,
            delay,
            error,
        )
        policy.on_retry(error, attempt, delay)

    logged = replace(policy, on_retry=_log_and_forward)

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await retry(lambda: fn(*args, **kwargs), logged)

    return wrapper


def _status_of(error: BaseException) -> int | None:
    if isinstance(error, ProviderHTTPError):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def is_retryable_error(error: BaseException) -> bool:
    """True for transport failures and HTTP 429/5xx; false for anything else."""
    if isinstance(error, (ProviderTimeoutError, ProviderConnectionError)):
        return True
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(error, socket.gaierror):
        return True
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    if isinstance(error, OSError) and error.errno in _RETRYABLE_ERRNOS:
        return True

    status = _status_of(error)
    if status is None:
        return False
    return status == 429 or 500 <= status < 600
