"""Abstract base class for nearest-neighbour chunk search."""

from __future__ import annotations

from abc import ABC, abstractmethod

from libdocs.models.document import DocumentChunk
from libdocs.models.search import VectorMatch


# Concrete implementations:
#   SqliteVectorIndex   -- float32 BLOBs in the main database, numpy cosine
#   ChromaVectorIndex   -- chromadb PersistentClient, cosine space
# Located in: libdocs/providers/vector_store/
class IVectorIndex(ABC):
    """Cosine-distance retrieval over chunk embeddings, scoped per version.

    Only the sync orchestrator calls :meth:`upsert` and
    :meth:`delete_by_document`.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create any backing tables or collections."""

    @abstractmethod
    async def upsert(self, version_id: str, path: str, chunks: list[DocumentChunk]) -> int:
        """Store vectors for *chunks* of the document at *path*.

        Chunks whose ``embedding`` is ``None`` are skipped.  Returns the
        number of vectors written.

        Raises
        ------
        libdocs.utils.errors.EmbeddingError
            If a vector's length differs from :meth:`get_dimension`.
        libdocs.utils.errors.PersistenceError
            If the backend write fails.
        """

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> None:
        """Remove every vector belonging to *document_id*."""

    @abstractmethod
    async def query_nearest(
        self, version_id: str, vector: list[float], limit: int
    ) -> list[VectorMatch]:
        """Return up to *limit* closest chunks of *version_id*.

        Ordered by ascending cosine distance, then ascending path, then
        ascending chunk index.
        """

    @abstractmethod
    async def count(self, version_id: str) -> int:
        """Return the number of stored vectors for *version_id*."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the vector dimension this index accepts."""
