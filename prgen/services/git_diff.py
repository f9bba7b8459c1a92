"""Unified diff inspection: per-file changed line numbers and GitHub deep links."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Sequence
from urllib.parse import quote

_HUNK_RE = re.compile(r"^@@\s+-(\d+)(?:,\d+)?\s+\+(\d+)(?:,\d+)?\s+@@")
_DIFF_GIT_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$")
_HEADER_PREFIXES = ("diff --git", "index ", "+++", "---")

MAX_LINE_LINKS = 10


class LineNumbers(NamedTuple):
    added: list[int]
    removed: list[int]


def extract_line_numbers(diff_text: str) -> LineNumbers:
    """Collect added (new-file) and removed (old-file) line numbers.

    Unrecognized lines are ignored; this never raises on malformed input.
    """
    added: list[int] = []
    removed: list[int] = []
    old_line = 0
    new_line = 0

    for line in (diff_text or "").split("\n"):
        hunk = _HUNK_RE.match(line)
        if hunk:
            old_line = int(hunk.group(1)) - 1
            new_line = int(hunk.group(2)) - 1
            continue

        if line.startswith(_HEADER_PREFIXES):
            continue

        if line.startswith("+"):
            new_line += 1
            added.append(new_line)
        elif line.startswith("-"):
            old_line += 1
            removed.append(old_line)
        elif line.startswith(" "):
            new_line += 1
            old_line += 1

    return LineNumbers(added, removed)


@dataclass(frozen=True)
class FileLineDelta:
    """Changed line numbers for one file of a diff."""

    file: str
    added: tuple[int, ...]
    removed: tuple[int, ...]

    @classmethod
    def from_diff(cls, file: str, diff_text: str) -> "FileLineDelta":
        numbers = extract_line_numbers(diff_text)
        return cls(file=file, added=tuple(numbers.added), removed=tuple(numbers.removed))


def split_file_diffs(diff_text: str) -> list[tuple[str, str]]:
    """Split a multi-file ``git diff`` into ``(path, chunk)`` pairs.

    The path is the ``b/`` (new) side; deleted files keep their old path.
    Text before the first ``diff --git`` header is dropped.
    """
    chunks: list[tuple[str, list[str]]] = []
    for line in (diff_text or "").split("\n"):
        header = _DIFF_GIT_RE.match(line)
        if header:
            chunks.append((header.group(2), [line]))
        elif chunks:
            chunks[-1][1].append(line)

    out: list[tuple[str, str]] = []
    for path, lines in chunks:
        for line in lines:
            if line.startswith("+++ ") and line[4:].strip() == "/dev/null":
                path = _DIFF_GIT_RE.match(lines[0]).group(1)
                break
        out.append((path, "\n".join(lines)))
    return out


def extract_file_deltas(diff_text: str) -> list[FileLineDelta]:
    return [FileLineDelta.from_diff(path, chunk) for path, chunk in split_file_diffs(diff_text)]


def file_url(base_url: str, owner: str, repo: str, branch: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{owner}/{repo}/blob/{quote(branch, safe='/')}/{quote(path, safe='/')}"


def line_url(base_url: str, owner: str, repo: str, branch: str, path: str, line: int) -> str:
    return f"{file_url(base_url, owner, repo, branch, path)}#L{line}"


def line_links(
    base_url: str,
    owner: str,
    repo: str,
    branch: str,
    path: str,
    lines: Sequence[int] | Iterable[int],
    *,
    limit: int = MAX_LINE_LINKS,
) -> str:
    """Comma-separated deep links for the first ``limit`` line numbers."""
    picked = list(lines)[:limit]
    return ", ".join(line_url(base_url, owner, repo, branch, path, n) for n in picked)
