"""Search result models for lexical and semantic retrieval."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SearchResult(BaseModel):
    """One document ranked by the lexical (FTS5/BM25) index."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    title: str
    path: str
    snippet: str
    score: float = Field(description="Relevance score; higher is better.")


class VectorMatch(BaseModel):
    """Raw nearest-neighbour hit returned by an :class:`IVectorIndex`."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    path: str
    chunk_index: int
    distance: float = Field(description="Cosine distance; lower is closer.")


class ChunkContext(BaseModel):
    """A chunk joined with its document's title and path."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    chunk_index: int
    text: str
    title: str
    path: str


class SemanticSearchResult(BaseModel):
    """One chunk ranked by vector similarity."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunk_id: str
    title: str
    path: str
    chunk_index: int
    snippet: str
    similarity: float = Field(description="1 - cosine distance.")
