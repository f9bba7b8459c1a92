"""Tolerant JSON extraction from LLM responses."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE_JSON_RE = re.compile(r"```json\s*")
_FENCE_RE = re.compile(r"```\s*")
# Greedy on purpose: first "{" through the last "}" in the text.
_OBJECT_SPAN_RE = re.compile(r"\{[\s\S]*\}")


def clean_json_response(text: str) -> str:
    """Remove code fences and narrow *text* to its outermost ``{...}`` span."""
    cleaned = _FENCE_JSON_RE.sub("", text)
    cleaned = _FENCE_RE.sub("", cleaned).strip()
    match = _OBJECT_SPAN_RE.search(cleaned)
    if match:
        cleaned = match.group(0)
    return cleaned


def load_json_object(text: str) -> dict | None:
    """Parse a cleaned response as a JSON object.

    Returns ``None`` when the text is not valid JSON or is not an object.
    """
    if not text or not text.strip():
        return None
    try:
        parsed = json.loads(clean_json_response(text))
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        logger.debug("JSON response was %s, not an object", type(parsed).__name__)
        return None
    return parsed
