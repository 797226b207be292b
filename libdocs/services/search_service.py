"""Hybrid documentation search: FTS5 keyword search and vector similarity.

Both searches are scoped to one (library, version) pair.  Full-text search
ranks whole documents by BM25; semantic search ranks chunks by cosine
similarity to the embedded query.
"""

from __future__ import annotations

import structlog

from libdocs.interfaces.document_store import IDocumentStore
from libdocs.interfaces.embedding_provider import IEmbeddingProvider
from libdocs.interfaces.lexical_index import ILexicalIndex
from libdocs.interfaces.vector_index import IVectorIndex
from libdocs.models.search import SearchResult, SemanticSearchResult
from libdocs.providers.storage.sqlite_lexical_index import truncate_snippet
from libdocs.services.library_service import LibraryService

logger = structlog.get_logger(logger_name=__name__)


class SearchService:
    """Read-only search over synced documentation.

    Parameters
    ----------
    library_service:
        Resolves library ids/names and version strings.
    lexical_index:
        FTS5-backed keyword index.
    vector_index:
        Nearest-neighbour chunk index.
    store:
        Document store, used to join vector hits back to chunk text.
    embedding_provider:
        Embeds semantic queries; must match the provider used at sync time.
    default_limit, default_threshold:
        Applied when callers pass ``None``.
    """

    def __init__(
        self,
        library_service: LibraryService,
        lexical_index: ILexicalIndex,
        vector_index: IVectorIndex,
        store: IDocumentStore,
        embedding_provider: IEmbeddingProvider,
        default_limit: int = 10,
        default_threshold: float = 0.5,
    ) -> None:
        self._libraries = library_service
        self._lexical = lexical_index
        self._vectors = vector_index
        self._store = store
        self._embedding = embedding_provider
        self._default_limit = default_limit
        self._default_threshold = default_threshold

    async def full_text_search(
        self,
        library: str,
        version: str | None,
        query: str,
        limit: int | None = None,
    ) -> list[SearchResult]:
        """Keyword search returning documents ordered by descending BM25 score.

        Raises ``NotFoundError`` when the library or version cannot be
        resolved.  A blank query or an unsynced version yields ``[]``.
        """
        resolved = await self._libraries.resolve_library(library, version)
        limit = self._default_limit if limit is None else limit
        if limit <= 0 or not query.strip():
            return []

        results = await self._lexical.search(resolved.version.id, query, limit)
        logger.info(
            "full_text_search",
            library=resolved.library.name,
            version=resolved.resolved_version,
            results=len(results),
        )
        return results

    async def semantic_search(
        self,
        library: str,
        version: str | None,
        query: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[SemanticSearchResult]:
        """Vector search returning chunks with similarity >= *threshold*.

        The query is embedded exactly once.  Results are ordered by
        similarity descending, then path and chunk index ascending.
        Raising *threshold* can only remove results.

        Raises
        ------
        NotFoundError
            If the library or version cannot be resolved.
        EmbeddingError
            If the query cannot be embedded.
        """
        resolved = await self._libraries.resolve_library(library, version)
        limit = self._default_limit if limit is None else limit
        threshold = self._default_threshold if threshold is None else threshold
        if limit <= 0 or not query.strip():
            return []

        query_vector = await self._embedding.embed_single(query)
        matches = await self._vectors.query_nearest(resolved.version.id, query_vector, limit)
        if not matches:
            return []

        contexts = {
            ctx.chunk_id: ctx
            for ctx in await self._store.get_chunk_contexts([m.chunk_id for m in matches])
        }

        results: list[SemanticSearchResult] = []
        for match in matches:
            ctx = contexts.get(match.chunk_id)
            if ctx is None:
                # Vector outlived its chunk row (document re-synced mid-query).
                continue
            similarity = 1.0 - match.distance
            if similarity < threshold:
                continue
            results.append(
                SemanticSearchResult(
                    document_id=ctx.document_id,
                    chunk_id=ctx.chunk_id,
                    title=ctx.title,
                    path=ctx.path,
                    chunk_index=ctx.chunk_index,
                    snippet=truncate_snippet(ctx.text),
                    similarity=similarity,
                )
            )

        results.sort(key=lambda r: (-r.similarity, r.path, r.chunk_index))
        logger.info(
            "semantic_search",
            library=resolved.library.name,
            version=resolved.resolved_version,
            candidates=len(matches),
            results=len(results),
        )
        return results
