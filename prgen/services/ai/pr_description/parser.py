"""Recover ``{title, body, summary}`` from a completion of unknown shape.

The model is asked for JSON but nothing guarantees it. Strict JSON parsing
is tried first; anything else degrades to Markdown heuristics. Only a
response without content raises.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

from prgen.core.errors import NoContentError

from ..common.json_tools import load_json_object
from .contracts import DEFAULT_SUMMARY, DEFAULT_TITLE, ParsedContent

logger = logging.getLogger(__name__)

MAX_SUMMARY_CHARS = 300

_TITLE_PATTERNS = (
    re.compile(r"^#\s+(.+)$", re.MULTILINE),
    re.compile(r"^Title:\s*(.+)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^##\s+(.+)$", re.MULTILINE),
    re.compile(r"^###\s+(.+)$", re.MULTILINE),
)

_SUMMARY_PATTERNS = (
    re.compile(r"^Summary:\s*(.+)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^## Summary\s*\n(.+)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^### Summary\s*\n(.+)$", re.MULTILINE | re.IGNORECASE),
)

_CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE_RE = re.compile(r"`[^`]+`")
_EMPHASIS_RE = re.compile(r"[*_#]+")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\n+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?](?:\s+|$)")


def _response_content(response: Any) -> Any:
    if isinstance(response, Mapping):
        return response.get("content")
    return getattr(response, "content", None)


def parse_ai_response(response: Any) -> ParsedContent:
    """Parse a provider response (mapping or object with ``content``).

    Raises ``NoContentError`` when ``content`` is missing, ``None`` or ``""``.
    """
    content = _response_content(response)
    if not content:
        raise NoContentError("No content received from AI provider")
    return parse_response_content(str(content))


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def parse_response_content(content: str) -> ParsedContent:
    parsed = load_json_object(content)
    if parsed is not None:
        title = _as_text(parsed.get("title")) or extract_title(content) or DEFAULT_TITLE
        body = _as_text(parsed.get("description")) or _as_text(parsed.get("body")) or content
        # Fallback summary reflects the resolved body, not the raw text.
        summary = _as_text(parsed.get("summary")) or generate_fallback_summary(body)
        return ParsedContent(title=title, body=body, summary=summary)

    logger.warning("AI response was not valid JSON; falling back to text extraction")
    title = extract_title(content) or DEFAULT_TITLE
    summary = extract_summary(content) or generate_fallback_summary(content)
    return ParsedContent(title=title, body=content, summary=summary)


def extract_title(content: str) -> Optional[str]:
    for pattern in _TITLE_PATTERNS:
        match = pattern.search(content)
        if match and match.group(1).strip():
            return match.group(1).strip()

    for line in content.split("\n"):
        trimmed = line.strip()
        if 10 < len(trimmed) < 100:
            return trimmed
    return None


def extract_summary(content: str) -> Optional[str]:
    for pattern in _SUMMARY_PATTERNS:
        match = pattern.search(content)
        if match and match.group(1).strip():
            return match.group(1).strip()

    first_paragraph = content.split("\n\n")[0].strip()
    if 20 < len(first_paragraph) < 500:
        return first_paragraph
    return None


def generate_fallback_summary(content: str) -> str:
    """Plain-text summary of at most 300 characters; never empty."""
    plain = _CODE_BLOCK_RE.sub("", content)
    plain = _INLINE_CODE_RE.sub("", plain)
    plain = _EMPHASIS_RE.sub("", plain)
    plain = _LINK_RE.sub(r"\1", plain).strip()

    summary = ""
    for paragraph in _PARAGRAPH_SPLIT_RE.split(plain):
        trimmed = paragraph.strip()
        if len(trimmed) > 20:
            summary = trimmed
            break
    if not summary:
        summary = plain

    if len(summary) > MAX_SUMMARY_CHARS:
        for sentence in _SENTENCE_SPLIT_RE.split(summary):
            trimmed = sentence.strip()
            if len(trimmed) > 20:
                summary = trimmed
                break

    if len(summary) > MAX_SUMMARY_CHARS:
        summary = summary[: MAX_SUMMARY_CHARS - 3] + "..."

    return summary or DEFAULT_SUMMARY
