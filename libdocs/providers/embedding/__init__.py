"""Embedding provider implementations.

    - OpenAIEmbeddingProvider     -- OpenAI-compatible embeddings API.
    - FastEmbedEmbeddingProvider  -- local ONNX models; optional ``fastembed``
      extra, so import it from its module where needed.
"""

from libdocs.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
