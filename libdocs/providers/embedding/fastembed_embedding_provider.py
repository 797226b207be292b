"""Local ONNX embedding provider backed by fastembed.

Runs on CPU with no API key.  ``fastembed`` is an optional extra
(``pip install libdocs[fastembed]``) and is imported on first use, when the
model weights are also downloaded and cached.

Model loading and inference are synchronous and CPU-bound, so both run in
a worker thread via ``asyncio.to_thread``; searches sharing the event loop
are never blocked by a sync embedding a large document.
"""

from __future__ import annotations

import asyncio
import importlib.util
from typing import Any

import structlog

from libdocs.interfaces.embedding_provider import IEmbeddingProvider
from libdocs.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_MODEL_DIMENSIONS: dict[str, int] = {
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-base-en-v1.5": 768,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "nomic-ai/nomic-embed-text-v1.5": 768,
}

_DEFAULT_MODEL = "BAAI/bge-small-en-v1.5"
# Texts handed to one ``TextEmbedding.embed`` call.
_BATCH_SIZE = 64


class FastEmbedEmbeddingProvider(IEmbeddingProvider):
    """fastembed ``TextEmbedding`` wrapped as an async :class:`IEmbeddingProvider`.

    Parameters
    ----------
    model_name:
        Any fastembed text model; defaults to ``BAAI/bge-small-en-v1.5``.
        Unknown models are assumed to produce 384-dimensional vectors.
    """

    def __init__(self, model_name: str | None = None) -> None:
        self._model_name = model_name or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model_name, 384)
        self._model: Any = None
        self._load_lock = asyncio.Lock()

    # -- IEmbeddingProvider implementation ---------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        model = await self._ensure_model()
        try:
            vectors = await asyncio.to_thread(self._embed_sync, model, texts)
        except Exception as exc:
            raise EmbeddingError(
                message=f"fastembed inference failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("fastembed_batch_embedded", texts=len(texts), model=self._model_name)
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        vectors = await self.embed([text])
        return vectors[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"fastembed_{self._model_name.rsplit('/', 1)[-1]}"

    def is_available(self) -> bool:
        return importlib.util.find_spec("fastembed") is not None

    # -- Sync helpers (executed via asyncio.to_thread) -----------------------------

    async def _ensure_model(self) -> Any:
        """Load the model once; concurrent first callers wait on the same load."""
        if self._model is not None:
            return self._model
        async with self._load_lock:
            if self._model is None:
                try:
                    self._model = await asyncio.to_thread(self._load_model_sync)
                except Exception as exc:
                    raise EmbeddingError(
                        message=f"Could not load fastembed model '{self._model_name}': {exc}",
                        provider_name=self.get_provider_name(),
                    ) from exc
        return self._model

    def _load_model_sync(self) -> Any:
        from fastembed import TextEmbedding

        logger.info("fastembed_model_loading", model=self._model_name)
        model = TextEmbedding(model_name=self._model_name)
        logger.info("fastembed_model_ready", model=self._model_name, dimension=self._dimension)
        return model

    @staticmethod
    def _embed_sync(model: Any, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), _BATCH_SIZE):
            # embed() yields one numpy array per text
            vectors.extend(v.tolist() for v in model.embed(texts[start : start + _BATCH_SIZE]))
        return vectors
