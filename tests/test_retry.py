"""Tests for prgen.utils.retry.

Covers:
- attempt budget (max_attempts counts total tries)
- should_retry short-circuit
- error identity on give-up
- backoff delays, cap and jitter range
- on_retry ordering (before the sleep)
- with_retry wrapper logging
- is_retryable_error classification
"""

from __future__ import annotations

import errno
import logging
import socket
from unittest.mock import AsyncMock

import httpx
import pytest

from prgen.core.errors import (
    ProviderAuthError,
    ProviderConnectionError,
    ProviderHTTPError,
    ProviderTimeoutError,
)
from prgen.utils import retry as retry_mod
from prgen.utils.retry import RetryPolicy, is_retryable_error, retry, with_retry


@pytest.fixture
def sleeps(monkeypatch):
    recorded: list[float] = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(retry_mod, "_sleep", fake_sleep)
    return recorded


# ── retry ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_returns_first_success(sleeps):
    op = AsyncMock(return_value="ok")

    assert await retry(op) == "ok"
    assert op.await_count == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_succeeds_after_failure(sleeps):
    op = AsyncMock(side_effect=[RuntimeError("boom"), "ok"])

    assert await retry(op, RetryPolicy(initial_delay=0.01)) == "ok"
    assert op.await_count == 2
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_exhausted_attempts_reraise_same_object(sleeps):
    error = RuntimeError("persistent")
    op = AsyncMock(side_effect=error)

    with pytest.raises(RuntimeError) as exc_info:
        await retry(op, RetryPolicy(max_attempts=3))

    assert exc_info.value is error
    assert op.await_count == 3
    # Three tries means two waits.
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_default_policy_makes_three_attempts(sleeps):
    op = AsyncMock(side_effect=ValueError("nope"))

    with pytest.raises(ValueError):
        await retry(op)

    assert op.await_count == 3


@pytest.mark.asyncio
async def test_should_retry_stops_before_budget(sleeps):
    op = AsyncMock(side_effect=RuntimeError("x"))
    policy = RetryPolicy(max_attempts=10, should_retry=lambda e, n: n < 2)

    with pytest.raises(RuntimeError):
        await retry(op, policy)

    assert op.await_count == 2


@pytest.mark.asyncio
async def test_should_retry_false_raises_immediately(sleeps):
    error = KeyError("fatal")
    op = AsyncMock(side_effect=error)

    with pytest.raises(KeyError) as exc_info:
        await retry(op, RetryPolicy(should_retry=lambda e, n: False))

    assert exc_info.value is error
    assert op.await_count == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_custom_exception_type_is_not_wrapped(sleeps):
    class Weird(Exception):
        pass

    weird = Weird()
    op = AsyncMock(side_effect=weird)

    with pytest.raises(Weird) as exc_info:
        await retry(op, RetryPolicy(max_attempts=2))

    assert exc_info.value is weird


@pytest.mark.asyncio
async def test_exponential_delays_without_jitter(sleeps):
    op = AsyncMock(side_effect=RuntimeError("x"))
    policy = RetryPolicy(max_attempts=4, initial_delay=1.0, backoff_multiplier=2.0, jitter=(1.0, 1.0))

    with pytest.raises(RuntimeError):
        await retry(op, policy)

    assert sleeps == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_delay_capped_by_max_delay(sleeps):
    op = AsyncMock(side_effect=RuntimeError("x"))
    policy = RetryPolicy(
        max_attempts=5,
        initial_delay=1.0,
        max_delay=3.0,
        backoff_multiplier=10.0,
        jitter=(1.0, 1.0),
    )

    with pytest.raises(RuntimeError):
        await retry(op, policy)

    assert sleeps == [1.0, 3.0, 3.0, 3.0]


def test_jitter_stays_within_ten_percent():
    policy = RetryPolicy(initial_delay=2.0, backoff_multiplier=3.0, max_delay=100.0)

    for _ in range(200):
        assert 1.8 <= policy.compute_delay(1) <= 2.2
        assert 5.4 <= policy.compute_delay(2) <= 6.6


@pytest.mark.asyncio
async def test_on_retry_called_before_sleep(sleeps):
    events: list[tuple] = []
    error = RuntimeError("x")
    op = AsyncMock(side_effect=[error, error, "done"])

    def on_retry(err, attempt, delay):
        events.append(("retry", err, attempt, delay, len(sleeps)))

    policy = RetryPolicy(initial_delay=0.5, jitter=(1.0, 1.0), on_retry=on_retry)

    assert await retry(op, policy) == "done"
    assert events == [
        ("retry", error, 1, 0.5, 0),
        ("retry", error, 2, 1.0, 1),
    ]
    assert sleeps == [0.5, 1.0]


@pytest.mark.asyncio
async def test_cancellation_is_not_retried(sleeps):
    import asyncio

    op = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await retry(op)

    assert op.await_count == 1


# ── with_retry ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_with_retry_wraps_and_logs(sleeps, caplog):
    calls = {"n": 0}
    forwarded: list[int] = []

    async def fetch_ticket(key, *, expand=False):
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionResetError("reset")
        return (key, expand)

    policy = RetryPolicy(jitter=(1.0, 1.0), on_retry=lambda e, n, d: forwarded.append(n))
    wrapped = with_retry(policy, fetch_ticket)

    with caplog.at_level(logging.WARNING, logger="prgen.utils.retry"):
        assert await wrapped("ABC-1", expand=True) == ("ABC-1", True)

    assert calls["n"] == 3
    assert forwarded == [1, 2]
    retry_lines = [r.getMessage() for r in caplog.records if "Retrying" in r.getMessage()]
    assert len(retry_lines) == 2
    assert "fetch_ticket" in retry_lines[0]
    assert "attempt 1" in retry_lines[0]
    assert wrapped.__name__ == "fetch_ticket"


@pytest.mark.asyncio
async def test_with_retry_uses_explicit_name(sleeps, caplog):
    outcomes = [TimeoutError("slow"), 42]

    async def op():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    wrapped = with_retry(RetryPolicy(), op, name="jira.get_issue")

    with caplog.at_level(logging.WARNING, logger="prgen.utils.retry"):
        assert await wrapped() == 42

    assert any("jira.get_issue" in r.getMessage() for r in caplog.records)


# ── is_retryable_error ───────────────────────────────────────────────


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.test/v1")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("status", request=request, response=response)


@pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
def test_retryable_statuses(status):
    assert is_retryable_error(_status_error(status)) is True
    assert is_retryable_error(ProviderHTTPError("x", status_code=status)) is True


@pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
def test_non_retryable_statuses(status):
    assert is_retryable_error(_status_error(status)) is False


def test_auth_error_not_retryable():
    assert is_retryable_error(ProviderAuthError("bad key", status_code=401)) is False


def test_transport_errors_retryable():
    request = httpx.Request("GET", "https://example.test")
    assert is_retryable_error(httpx.ConnectError("refused", request=request)) is True
    assert is_retryable_error(httpx.ReadTimeout("slow", request=request)) is True
    assert is_retryable_error(ProviderTimeoutError("slow")) is True
    assert is_retryable_error(ProviderConnectionError("reset")) is True
    assert is_retryable_error(ConnectionResetError()) is True
    assert is_retryable_error(socket.gaierror(socket.EAI_NONAME, "unknown host")) is True
    assert is_retryable_error(OSError(errno.ETIMEDOUT, "timed out")) is True


def test_unknown_errors_not_retryable():
    assert is_retryable_error(ValueError("bad")) is False
    assert is_retryable_error(RuntimeError("?")) is False
    assert is_retryable_error(OSError(errno.ENOENT, "missing")) is False


def test_policy_from_settings(settings_factory):
    settings = settings_factory(
        ai_retry_max_attempts=5,
        ai_retry_initial_delay_seconds=0.25,
        ai_retry_max_delay_seconds=4.0,
    )
    policy = RetryPolicy.from_settings(settings)

    assert policy.max_attempts == 5
    assert policy.initial_delay == 0.25
    assert policy.max_delay == 4.0
    assert policy.should_retry(ProviderTimeoutError("t"), 1) is True
    assert policy.should_retry(ValueError("v"), 1) is False
