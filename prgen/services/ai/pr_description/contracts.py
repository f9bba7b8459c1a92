"""PR description contracts: ParsedContent + validation."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

DEFAULT_TITLE = "Pull Request"
DEFAULT_SUMMARY = "Pull request changes"


class ParsedContent(BaseModel):
    """Structured output recovered from a completion."""

    title: str
    body: str
    summary: str

    @field_validator("title", "body", "summary")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if v == "":
            msg = "ParsedContent fields must not be empty"
            raise ValueError(msg)
        return v
