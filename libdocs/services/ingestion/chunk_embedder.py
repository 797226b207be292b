"""Per-document embedding of chunk batches.

All chunks of one document go to the embedding provider in a single
``embed`` call.  The response is checked for count and dimension before
any vector is attached; on failure every chunk is returned without an
embedding so it stays searchable lexically while vector search skips it.
"""

from __future__ import annotations

import structlog

from libdocs.interfaces.embedding_provider import IEmbeddingProvider
from libdocs.models.document import DocumentChunk
from libdocs.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)


class ChunkEmbedder:
    """Attach embeddings to a document's chunks with one provider call."""

    def __init__(self, embedding_provider: IEmbeddingProvider) -> None:
        self._provider = embedding_provider
        self._dimension = embedding_provider.get_dimension()

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed_chunks(
        self, chunks: list[DocumentChunk]
    ) -> tuple[list[DocumentChunk], EmbeddingError | None]:
        """Return *chunks* with embeddings attached, plus the failure if any.

        Never raises for provider failures; the error is returned so the
        caller can count it.
        """
        if not chunks:
            return [], None

        try:
            vectors = await self._provider.embed([c.text for c in chunks])
            self._validate(vectors, len(chunks))
        except EmbeddingError as exc:
            logger.warning(
                "chunk_embedding_failed",
                document_id=chunks[0].document_id,
                chunks=len(chunks),
                error=str(exc),
            )
            return [c.model_copy(update={"embedding": None}) for c in chunks], exc

        embedded = [
            chunk.model_copy(update={"embedding": [float(x) for x in vector]})
            for chunk, vector in zip(chunks, vectors)
        ]
        return embedded, None

    def _validate(self, vectors: list[list[float]], expected: int) -> None:
        provider = self._provider.get_provider_name()
        if len(vectors) != expected:
            raise EmbeddingError(
                message=f"Expected {expected} embeddings, got {len(vectors)}",
                provider_name=provider,
            )
        for vector in vectors:
            if len(vector) != self._dimension:
                raise EmbeddingError(
                    message=(
                        f"Embedding dimension {len(vector)} does not match "
                        f"configured dimension {self._dimension}"
                    ),
                    provider_name=provider,
                )
