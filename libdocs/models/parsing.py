"""Parser output models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CodeBlock(BaseModel):
    """A code block found while parsing, tagged with its language."""

    model_config = ConfigDict(frozen=True)

    language: str
    code: str


class ParsedDocument(BaseModel):
    """Format-independent result of parsing one documentation file.

    Parsers never raise; unreadable or empty input yields
    :meth:`empty`.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    content: str = ""
    code_blocks: list[CodeBlock] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def empty(cls, metadata: dict[str, Any] | None = None) -> ParsedDocument:
        """Return a document with no title, content or code blocks."""
        return cls(metadata=metadata or {})
