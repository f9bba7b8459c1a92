"""PR description generation: provider selection, retried generation, parsing."""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, replace
from typing import Optional

from prgen.utils.cache import Cache, with_cache
from prgen.utils.retry import RetryPolicy, with_retry

from ..common.manager import AIProviderManager
from ..common.providers.base import ChunkCallback
from .contracts import ParsedContent
from .parser import parse_ai_response

logger = logging.getLogger(__name__)


@dataclass
class DescriptionServiceResult:
    """Result from ``generate_pr_description`` including metadata."""

    content: ParsedContent
    raw_text: str
    provider: str
    attempts: int
    total_latency_ms: float
    cached: bool = False


def _cache_key(prompt: str, provider: str) -> str:
    return f"{provider}:{hashlib.sha256(prompt.encode()).hexdigest()}"


async def generate_pr_description(
    prompt: str,
    manager: AIProviderManager,
    *,
    policy: RetryPolicy | None = None,
    stream: bool = False,
    on_chunk: Optional[ChunkCallback] = None,
    cache: Cache | None = None,
) -> DescriptionServiceResult:
    """Generate and parse a PR description for an already assembled *prompt*.

    * ``policy`` defaults to ``RetryPolicy.from_settings`` (transport errors
      and 429/5xx only).
    * ``cache`` memoizes raw completions per ``(provider, prompt)``; streaming
      calls always hit the provider.
    * when streaming, a failure after the first chunk is not retried.
    """
    provider = await manager.select_provider()
    policy = policy or RetryPolicy.from_settings(manager.settings)

    attempts = 0
    delivered = False

    def _forward(chunk: str) -> None:
        nonlocal delivered
        delivered = True
        if on_chunk is not None:
            on_chunk(chunk)

    async def _generate(prompt: str, provider: str) -> str:
        nonlocal attempts
        attempts += 1
        if stream:
            return await manager.generate_content_stream(prompt, provider, _forward)
        return await manager.generate_content(prompt, provider)

    if stream:
        # Once text has reached on_chunk a retry would deliver it twice.
        base_should_retry = policy.should_retry
        policy = replace(
            policy,
            should_retry=lambda error, attempt: not delivered and base_should_retry(error, attempt),
        )

    generate = with_retry(policy, _generate, name=f"generate_content[{provider}]")
    if cache is not None and not stream:
        generate = with_cache(cache, _cache_key, generate)

    t0 = time.monotonic()
    raw_text = await generate(prompt, provider)
    total_ms = (time.monotonic() - t0) * 1000

    content = parse_ai_response({"content": raw_text})
    logger.info(
        "Generated PR description provider=%s attempts=%d latency_ms=%.2f",
        provider,
        attempts,
        total_ms,
    )
    return DescriptionServiceResult(
        content=content,
        raw_text=raw_text,
        provider=provider,
        attempts=attempts,
        total_latency_ms=round(total_ms, 2),
        cached=attempts == 0,
    )
