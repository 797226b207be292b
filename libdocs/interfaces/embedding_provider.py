"""Abstract base class for text-embedding providers.

The embedding dimension is fixed for a deployment: every vector written to
the vector index and every query vector must have
:meth:`IEmbeddingProvider.get_dimension` components.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider     -- OpenAI-compatible embeddings API
#   FastEmbedEmbeddingProvider  -- local ONNX models (optional extra)
# Located in: libdocs/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for batch text-to-vector services."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Texts to embed.  The sync orchestrator passes all chunks of one
            document in a single call; implementations split internally if
            the backend has a per-call limit.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*.

        Raises
        ------
        libdocs.utils.errors.EmbeddingError
            If the backend call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one text, typically a search query."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the fixed dimensionality of produced vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and usable."""
