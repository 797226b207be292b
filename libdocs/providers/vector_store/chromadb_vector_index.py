"""ChromaDB vector index adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorIndex`.
The collection uses cosine space, so Chroma's reported distance is
``1 - cosine_similarity``, the same scale as the SQLite backend.  Every
vector carries ``version_id``/``document_id``/``path``/``chunk_index``
metadata for scoping and tie-breaking.
"""

from __future__ import annotations

import os
from typing import Any

# Keep Chroma's anonymous telemetry off before the import reads its settings.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog

from libdocs.interfaces.vector_index import IVectorIndex
from libdocs.models.document import DocumentChunk
from libdocs.models.search import VectorMatch
from libdocs.utils.errors import EmbeddingError, PersistenceError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that stops ChromaDB from loading its default model.

    Vectors are always computed by an :class:`IEmbeddingProvider` and passed
    in explicitly, so Chroma's own embedding path must never run.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "libdocs passes pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaVectorIndex(IVectorIndex):
    """Vector index backed by a persistent ChromaDB collection."""

    def __init__(
        self,
        dimension: int,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "libdocs_chunks",
    ) -> None:
        self._dimension = dimension
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection: Any = None

    async def initialize(self) -> None:
        try:
            try:
                self._collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                    embedding_function=_NoopEmbeddingFunction(),
                )
            except ValueError:
                # Collection persisted with a different embedding function;
                # reopen it as-is since vectors are always passed explicitly.
                self._collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
        except Exception as exc:
            raise PersistenceError(
                message=f"Failed to open collection '{self._collection_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info(
            "vector_index_initialized",
            backend="chromadb",
            collection=self._collection_name,
            dimension=self._dimension,
        )

    async def upsert(self, version_id: str, path: str, chunks: list[DocumentChunk]) -> int:
        embedded = [c for c in chunks if c.embedding is not None]
        for chunk in embedded:
            self._check_dimension(chunk.embedding)
        if not embedded:
            return 0

        try:
            self._get_collection().upsert(
                ids=[c.id for c in embedded],
                embeddings=[c.embedding for c in embedded],
                documents=[c.text for c in embedded],
                metadatas=[
                    {
                        "version_id": version_id,
                        "document_id": c.document_id,
                        "path": path,
                        "chunk_index": c.chunk_index,
                    }
                    for c in embedded
                ],
            )
        except Exception as exc:
            raise PersistenceError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return len(embedded)

    async def delete_by_document(self, document_id: str) -> None:
        try:
            self._get_collection().delete(where={"document_id": document_id})
        except Exception as exc:
            raise PersistenceError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def query_nearest(
        self, version_id: str, vector: list[float], limit: int
    ) -> list[VectorMatch]:
        self._check_dimension(vector)
        if limit <= 0:
            return []

        try:
            collection = self._get_collection()
            # n_results may not exceed the collection size; the filter
            # narrows the hits further.
            available = collection.count()
            if available == 0:
                return []
            results = collection.query(
                query_embeddings=[vector],
                n_results=min(limit, available),
                where={"version_id": version_id},
                include=["distances", "metadatas"],
            )
        except Exception as exc:
            raise PersistenceError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        distances = results["distances"][0] if results.get("distances") else []
        metadatas = results["metadatas"][0] if results.get("metadatas") else []

        matches = [
            VectorMatch(
                chunk_id=chunk_id,
                document_id=str(meta.get("document_id", "")),
                path=str(meta.get("path", "")),
                chunk_index=int(meta.get("chunk_index", 0)),
                distance=float(distance),
            )
            for chunk_id, distance, meta in zip(ids, distances, metadatas)
        ]
        matches.sort(key=lambda m: (m.distance, m.path, m.chunk_index))
        return matches

    async def count(self, version_id: str) -> int:
        try:
            found = self._get_collection().get(
                where={"version_id": version_id},
                include=["metadatas"],
            )
        except Exception as exc:
            raise PersistenceError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return len(found.get("ids") or [])

    def get_dimension(self) -> int:
        return self._dimension

    @staticmethod
    def get_provider_name() -> str:
        return "chromadb"

    def _get_collection(self) -> Any:
        if self._collection is None:
            raise PersistenceError(
                message="ChromaVectorIndex.initialize() has not been called",
                provider_name=self.get_provider_name(),
            )
        return self._collection

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self._dimension:
            raise EmbeddingError(
                message=(
                    f"Vector has {len(vector)} dimensions; index expects {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )
