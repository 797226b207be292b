"""Sync orchestrator: Fetch -> Parse -> Chunk -> Embed -> Store per version.

One run processes one library version's files sequentially and owns the
run's :class:`SyncHistory` row from start to terminal state:

1. ``IDocumentStore.start_sync`` atomically inserts a RUNNING row; a second
   concurrent run for the same version gets
   :class:`ConcurrentRunConflictError` and nothing is written.
2. The fetch chain lists the version's documentation files.  Exhausting
   every strategy aborts the run as FAILED.
3. Each supported file is read, hashed (SHA-256 of the source text) and
   compared with the stored document.  Unchanged files are skipped
   entirely.  New or changed files are parsed, chunked, embedded in one
   batch, and their previous chunks, vectors and code examples are
   replaced.  The hash is recorded last, so a document whose writes were
   interrupted is re-processed on the next run.
4. Per-document problems (a lazy read failing, undecodable text, an
   embedding batch failing) are logged and counted.  Persistence failures
   abort the run as FAILED.

Documents that disappear upstream are kept as they are.  The run counts
them as ``stale_documents`` in its metadata but never deletes them.
"""

from __future__ import annotations

import functools
import hashlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

import structlog

from libdocs.interfaces.document_store import IDocumentStore
from libdocs.interfaces.vector_index import IVectorIndex
from libdocs.models.document import CodeExample, Document
from libdocs.models.sync import SyncHistory, SyncStatus
from libdocs.services.ingestion.chunk_embedder import ChunkEmbedder
from libdocs.services.ingestion.chunker import TextChunker
from libdocs.services.ingestion.content_fetcher import ContentFetcher
from libdocs.services.ingestion.content_parser import ContentParser
from libdocs.utils.errors import (
    EmbeddingError,
    FetchError,
    NotFoundError,
    PersistenceError,
)
from libdocs.utils.logging import bound_context

logger = structlog.get_logger(logger_name=__name__)

# Cap on per-document error details kept in the run metadata.
_MAX_RECORDED_ERRORS = 50


def content_hash(text: str) -> str:
    """Return the SHA-256 hex digest used to detect unchanged documents."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class _Source:
    """A file to sync: its repository-relative path and a deferred reader."""

    path: str
    load: Callable[[], Awaitable[str]]


@dataclass
class _RunStats:
    documents_processed: int = 0
    chunks_created: int = 0
    skipped_unchanged: int = 0
    skipped_unsupported: int = 0
    stale_documents: int = 0
    strategy_used: str = ""
    errors: list[dict[str, str]] = field(default_factory=list)
    error_count: int = 0

    def record_error(self, path: str, exc: Exception) -> None:
        self.error_count += 1
        if len(self.errors) < _MAX_RECORDED_ERRORS:
            self.errors.append({"path": path, "error": str(exc)})

    def to_metadata(self) -> dict[str, Any]:
        return {
            "strategy_used": self.strategy_used,
            "error_count": self.error_count,
            "errors": list(self.errors),
            "skipped_unchanged": self.skipped_unchanged,
            "skipped_unsupported": self.skipped_unsupported,
            "stale_documents": self.stale_documents,
        }


class SyncService:
    """Drives documentation syncs and the sync-run state machine.

    All collaborators are injected; the service never builds them itself.
    """

    def __init__(
        self,
        store: IDocumentStore,
        vector_index: IVectorIndex,
        fetcher: ContentFetcher,
        parser: ContentParser,
        chunker: TextChunker,
        embedder: ChunkEmbedder,
    ) -> None:
        self._store = store
        self._vector_index = vector_index
        self._fetcher = fetcher
        self._parser = parser
        self._chunker = chunker
        self._embedder = embedder

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(
        self,
        version_id: str,
        owner: str,
        repo: str,
        docs_path: str,
        ref: str,
    ) -> SyncHistory:
        """Sync one library version from a GitHub repository.

        Returns the terminal :class:`SyncHistory` row (SUCCESS or FAILED).

        Raises
        ------
        NotFoundError
            If *version_id* does not exist.
        ConcurrentRunConflictError
            If a run for *version_id* is already RUNNING.
        """
        await self._require_version(version_id)
        run = await self._store.start_sync(version_id)
        stats = _RunStats()

        with bound_context(sync_id=run.id, version_id=version_id):
            logger.info("sync_started", owner=owner, repo=repo, docs_path=docs_path, ref=ref)
            try:
                result = await self._fetcher.fetch(owner, repo, docs_path, ref)
                stats.strategy_used = result.strategy_used
                sources = [
                    _Source(
                        path=f.path,
                        load=functools.partial(
                            self._fetcher.read_file, owner, repo, ref, result, f
                        ),
                    )
                    for f in result.files
                ]
                await self._process_sources(version_id, sources, stats)
            except (FetchError, PersistenceError) as exc:
                return await self._finish_failed(run, stats, exc)
            except Exception as exc:
                logger.exception("sync_crashed", error=str(exc))
                await self._finish_failed(run, stats, exc)
                raise
            return await self._finish_succeeded(run, stats)

    async def run_local(
        self, version_id: str, root: str | Path, pattern: str = "**/*"
    ) -> SyncHistory:
        """Sync one library version from a local directory tree.

        Files under *root* matching the glob *pattern* go through the same
        parse/hash/chunk/embed/store path as remote files.  Document paths
        are relative to *root*.
        """
        await self._require_version(version_id)
        run = await self._store.start_sync(version_id)
        stats = _RunStats(strategy_used="local")
        root_path = Path(root)

        with bound_context(sync_id=run.id, version_id=version_id):
            logger.info("sync_started", root=str(root_path), pattern=pattern)
            try:
                if not root_path.is_dir():
                    raise FetchError(
                        message=f"Local documentation root {root_path} is not a directory",
                        provider_name="local",
                    )
                files = sorted(p for p in root_path.glob(pattern) if p.is_file())
                if not files:
                    raise FetchError(
                        message=f"No files under {root_path} match {pattern!r}",
                        provider_name="local",
                    )
                sources = [
                    _Source(
                        path=p.relative_to(root_path).as_posix(),
                        load=functools.partial(_read_local_file, p),
                    )
                    for p in files
                ]
                await self._process_sources(version_id, sources, stats)
            except (FetchError, PersistenceError) as exc:
                return await self._finish_failed(run, stats, exc)
            except Exception as exc:
                logger.exception("sync_crashed", error=str(exc))
                await self._finish_failed(run, stats, exc)
                raise
            return await self._finish_succeeded(run, stats)

    # ------------------------------------------------------------------
    # Document processing
    # ------------------------------------------------------------------

    async def _process_sources(
        self, version_id: str, sources: list[_Source], stats: _RunStats
    ) -> None:
        known_paths = set(await self._store.list_document_paths(version_id))
        seen_paths: set[str] = set()

        for source in sources:
            if not self._parser.supports(source.path):
                stats.skipped_unsupported += 1
                continue
            seen_paths.add(source.path)
            try:
                await self._process_document(version_id, source, stats)
            except (FetchError, EmbeddingError, UnicodeDecodeError) as exc:
                stats.record_error(source.path, exc)
                logger.warning("document_sync_failed", path=source.path, error=str(exc))

        stats.stale_documents = len(known_paths - seen_paths)
        if stats.stale_documents:
            logger.info("stale_documents_retained", count=stats.stale_documents)

    async def _process_document(self, version_id: str, source: _Source, stats: _RunStats) -> None:
        text = await source.load()
        digest = content_hash(text)

        existing = await self._store.get_document(version_id, source.path)
        if (
            existing is not None
            and existing.content_hash == digest
            and not existing.metadata.get("embedding_failed")
        ):
            stats.skipped_unchanged += 1
            logger.debug("document_unchanged", path=source.path)
            return

        doc_type, parsed = self._parser.parse(text, source.path)
        document_id = existing.id if existing is not None else str(uuid4())

        chunks = self._chunker.chunk(parsed.content, document_id)
        chunks, embed_error = await self._embedder.embed_chunks(chunks)
        if embed_error is not None:
            stats.record_error(source.path, embed_error)

        metadata = dict(parsed.metadata)
        if embed_error is not None:
            # Retried on the next run even if the source is unchanged.
            metadata["embedding_failed"] = True

        if existing is not None:
            await self._store.delete_code_examples(existing.id)
            await self._store.delete_chunks(existing.id)
            await self._vector_index.delete_by_document(existing.id)

        # Stored without its hash until every derived row is written, so a run
        # that fails part way re-processes this document next time.
        document = await self._store.save_document(
            Document(
                id=document_id,
                version_id=version_id,
                title=parsed.title,
                path=source.path,
                content=parsed.content,
                format=doc_type,
                content_hash="",
                metadata=metadata,
            )
        )

        chunks = [c.model_copy(update={"embedded": c.embedding is not None}) for c in chunks]
        await self._store.save_chunks(chunks)
        await self._vector_index.upsert(version_id, document.path, chunks)

        await self._store.save_code_examples(
            [
                CodeExample(
                    id=str(uuid4()),
                    document_id=document.id,
                    language=block.language,
                    code=block.code,
                    position=position,
                )
                for position, block in enumerate(parsed.code_blocks)
            ]
        )
        await self._store.set_content_hash(document.id, digest)

        stats.documents_processed += 1
        stats.chunks_created += len(chunks)
        logger.debug(
            "document_synced",
            path=source.path,
            chunks=len(chunks),
            code_examples=len(parsed.code_blocks),
            updated=existing is not None,
        )

    # ------------------------------------------------------------------
    # Run completion
    # ------------------------------------------------------------------

    async def _require_version(self, version_id: str) -> None:
        if await self._store.get_version_by_id(version_id) is None:
            raise NotFoundError(message=f"Library version '{version_id}' does not exist")

    async def _finish_succeeded(self, run: SyncHistory, stats: _RunStats) -> SyncHistory:
        history = await self._store.complete_sync(
            run.id,
            SyncStatus.SUCCESS,
            documents_processed=stats.documents_processed,
            chunks_created=stats.chunks_created,
            metadata=stats.to_metadata(),
        )
        logger.info(
            "sync_completed",
            documents_processed=stats.documents_processed,
            chunks_created=stats.chunks_created,
            skipped_unchanged=stats.skipped_unchanged,
            errors=stats.error_count,
        )
        return history

    async def _finish_failed(
        self, run: SyncHistory, stats: _RunStats, exc: Exception
    ) -> SyncHistory:
        history = await self._store.complete_sync(
            run.id,
            SyncStatus.FAILED,
            documents_processed=stats.documents_processed,
            chunks_created=stats.chunks_created,
            error_message=str(exc),
            metadata=stats.to_metadata(),
        )
        logger.error("sync_failed", error=str(exc), documents_processed=stats.documents_processed)
        return history


async def _read_local_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")
