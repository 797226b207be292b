"""Document, chunk and code-example models for the documentation index.

A :class:`Document` is one normalised source file scoped to a library
version and keyed on ``(version_id, path)``.  Its ``content_hash`` (SHA-256
of the raw file text) lets the sync orchestrator skip files that did not
change since the last run.

:class:`DocumentChunk` rows are regenerated in full whenever the owning
document's hash changes.  The ``embedding`` field is only populated in
flight between the embedding call and the vector index; the relational
store records whether a vector exists through ``embedded``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """One documentation file belonging to a library version."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID), stable across updates.")
    version_id: str = Field(description="Owning library version id.")
    title: str = Field(default="")
    path: str = Field(description="Repository-relative path, unique per version.")
    content: str = Field(default="")
    format: str = Field(default="markdown", description="Parser doc type.")
    content_hash: str = Field(description="SHA-256 hex digest of the source text.")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DocumentChunk(BaseModel):
    """A bounded slice of a document's content.

    ``chunk_index`` is zero-based and contiguous within a document.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID).")
    document_id: str
    chunk_index: int = Field(ge=0)
    text: str
    token_count: int = Field(default=0, ge=0, description="Approximate token count.")
    embedding: list[float] | None = Field(
        default=None,
        description="Vector for this chunk; None when embedding failed.",
    )
    embedded: bool = Field(
        default=False,
        description="True when a vector for this chunk was written to the vector index.",
    )


class CodeExample(BaseModel):
    """A fenced/pre code block extracted from a document."""

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    language: str
    code: str
    position: int = Field(default=0, ge=0, description="Order within the document.")
