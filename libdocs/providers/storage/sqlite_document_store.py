"""SQLite-backed documentation store.

Persists libraries, versions, documents, chunks, code examples and sync
history in one SQLite file using ``aiosqlite`` for async I/O.  Each
operation opens its own short-lived connection, so concurrent sync runs
and searches never share a cursor.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite
import structlog

from libdocs.interfaces.document_store import IDocumentStore
from libdocs.models.document import CodeExample, Document, DocumentChunk
from libdocs.models.library import Library, LibraryVersion, SourceType
from libdocs.models.search import ChunkContext
from libdocs.models.sync import SyncHistory, SyncStatus
from libdocs.providers.storage.schema import SCHEMA_STATEMENTS
from libdocs.utils.errors import (
    ConcurrentRunConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    PersistenceError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/libdocs.db")

_UPSERT_LIBRARY_SQL = """\
INSERT INTO libraries (id, name, display_name, source_type, source_url, category, tags)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(name)
DO UPDATE SET display_name = excluded.display_name,
              source_type  = excluded.source_type,
              source_url   = excluded.source_url,
              category     = excluded.category,
              tags         = excluded.tags;
"""

_UPSERT_VERSION_SQL = """\
INSERT INTO library_versions (id, library_id, version, is_latest, status, docs_path)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(library_id, version)
DO UPDATE SET is_latest = excluded.is_latest,
              status    = excluded.status,
              docs_path = excluded.docs_path;
"""

_UPSERT_DOCUMENT_SQL = """\
INSERT INTO documents (id, version_id, title, path, content, format, content_hash, metadata)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(version_id, path)
DO UPDATE SET title        = excluded.title,
              content      = excluded.content,
              format       = excluded.format,
              content_hash = excluded.content_hash,
              metadata     = excluded.metadata,
              updated_at   = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_COMPLETE_SYNC_SQL = """\
UPDATE sync_history
SET status = ?, completed_at = ?, documents_processed = ?, chunks_created = ?,
    error_message = ?, metadata = ?
WHERE id = ? AND status = 'RUNNING';
"""

_SYNC_COLUMNS = (
    "id, version_id, status, started_at, completed_at, documents_processed, "
    "chunks_created, error_message, metadata"
)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteDocumentStore(IDocumentStore):
    """SQLite persistence for the documentation index."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with foreign keys on; storage errors become PersistenceError."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys = ON")
                yield db
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"SQLite operation failed: {exc}",
                provider_name="sqlite",
            ) from exc

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute("PRAGMA journal_mode = WAL")
            for statement in SCHEMA_STATEMENTS:
                await db.execute(statement)
            await db.commit()
        logger.info("document_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Libraries & versions
    # ------------------------------------------------------------------

    async def save_library(self, library: Library) -> Library:
        async with self._connect() as db:
            await db.execute(
                _UPSERT_LIBRARY_SQL,
                (
                    library.id,
                    library.name,
                    library.display_name,
                    library.source_type.value,
                    library.source_url,
                    library.category,
                    json.dumps(library.tags),
                ),
            )
            await db.commit()
            cursor = await db.execute("SELECT * FROM libraries WHERE name = ?", (library.name,))
            row = await cursor.fetchone()
        return _row_to_library(row)

    async def get_library(self, identifier: str) -> Library | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM libraries WHERE id = ? OR name = ? "
                "ORDER BY CASE WHEN id = ? THEN 0 ELSE 1 END LIMIT 1",
                (identifier, identifier, identifier),
            )
            row = await cursor.fetchone()
        return _row_to_library(row) if row else None

    async def list_libraries(self, source_type: SourceType | None = None) -> list[Library]:
        async with self._connect() as db:
            if source_type is not None:
                cursor = await db.execute(
                    "SELECT * FROM libraries WHERE source_type = ? ORDER BY name",
                    (source_type.value,),
                )
            else:
                cursor = await db.execute("SELECT * FROM libraries ORDER BY name")
            rows = await cursor.fetchall()
        return [_row_to_library(r) for r in rows]

    async def save_version(self, version: LibraryVersion) -> LibraryVersion:
        async with self._connect() as db:
            if version.is_latest:
                await db.execute(
                    "UPDATE library_versions SET is_latest = 0 "
                    "WHERE library_id = ? AND version != ?",
                    (version.library_id, version.version),
                )
            await db.execute(
                _UPSERT_VERSION_SQL,
                (
                    version.id,
                    version.library_id,
                    version.version,
                    int(version.is_latest),
                    version.status.value,
                    version.docs_path,
                ),
            )
            await db.commit()
            cursor = await db.execute(
                "SELECT * FROM library_versions WHERE library_id = ? AND version = ?",
                (version.library_id, version.version),
            )
            row = await cursor.fetchone()
        return _row_to_version(row)

    async def get_version(self, library_id: str, version: str) -> LibraryVersion | None:
        return await self._fetch_version(
            "SELECT * FROM library_versions WHERE library_id = ? AND version = ?",
            (library_id, version),
        )

    async def get_version_by_id(self, version_id: str) -> LibraryVersion | None:
        return await self._fetch_version(
            "SELECT * FROM library_versions WHERE id = ?", (version_id,)
        )

    async def get_latest_version(self, library_id: str) -> LibraryVersion | None:
        return await self._fetch_version(
            "SELECT * FROM library_versions WHERE library_id = ? AND is_latest = 1",
            (library_id,),
        )

    async def list_versions(self, library_id: str) -> list[LibraryVersion]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM library_versions WHERE library_id = ? ORDER BY version",
                (library_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_version(r) for r in rows]

    async def _fetch_version(self, sql: str, params: tuple) -> LibraryVersion | None:
        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            row = await cursor.fetchone()
        return _row_to_version(row) if row else None

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def get_document(self, version_id: str, path: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM documents WHERE version_id = ? AND path = ?",
                (version_id, path),
            )
            row = await cursor.fetchone()
        return _row_to_document(row) if row else None

    async def save_document(self, document: Document) -> Document:
        async with self._connect() as db:
            await db.execute(
                _UPSERT_DOCUMENT_SQL,
                (
                    document.id,
                    document.version_id,
                    document.title,
                    document.path,
                    document.content,
                    document.format,
                    document.content_hash,
                    json.dumps(document.metadata),
                ),
            )
            await db.commit()
            cursor = await db.execute(
                "SELECT * FROM documents WHERE version_id = ? AND path = ?",
                (document.version_id, document.path),
            )
            row = await cursor.fetchone()
        return _row_to_document(row)

    async def set_content_hash(self, document_id: str, content_hash: str) -> None:
        async with self._connect() as db:
            await db.execute(
                "UPDATE documents SET content_hash = ? WHERE id = ?",
                (content_hash, document_id),
            )
            await db.commit()

    async def list_document_paths(self, version_id: str) -> list[str]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT path FROM documents WHERE version_id = ? ORDER BY path",
                (version_id,),
            )
            rows = await cursor.fetchall()
        return [r["path"] for r in rows]

    # ------------------------------------------------------------------
    # Chunks & code examples
    # ------------------------------------------------------------------

    async def delete_chunks(self, document_id: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM document_chunks WHERE document_id = ?", (document_id,)
            )
            await db.commit()
            return cursor.rowcount

    async def save_chunks(self, chunks: list[DocumentChunk]) -> None:
        if not chunks:
            return
        async with self._connect() as db:
            await db.executemany(
                "INSERT INTO document_chunks "
                "(id, document_id, chunk_index, text, token_count, embedded) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (
                        c.id,
                        c.document_id,
                        c.chunk_index,
                        c.text,
                        c.token_count,
                        int(c.embedded or c.embedding is not None),
                    )
                    for c in chunks
                ],
            )
            await db.commit()

    async def list_chunks(self, document_id: str) -> list[DocumentChunk]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, document_id, chunk_index, text, token_count, embedded "
                "FROM document_chunks WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [
            DocumentChunk(
                id=r["id"],
                document_id=r["document_id"],
                chunk_index=r["chunk_index"],
                text=r["text"],
                token_count=r["token_count"],
                embedded=bool(r["embedded"]),
            )
            for r in rows
        ]

    async def get_chunk_contexts(self, chunk_ids: list[str]) -> list[ChunkContext]:
        if not chunk_ids:
            return []
        placeholders = ", ".join("?" for _ in chunk_ids)
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT c.id, c.document_id, c.chunk_index, c.text, d.title, d.path "
                "FROM document_chunks c JOIN documents d ON d.id = c.document_id "
                f"WHERE c.id IN ({placeholders})",
                tuple(chunk_ids),
            )
            rows = await cursor.fetchall()
        return [
            ChunkContext(
                chunk_id=r["id"],
                document_id=r["document_id"],
                chunk_index=r["chunk_index"],
                text=r["text"],
                title=r["title"],
                path=r["path"],
            )
            for r in rows
        ]

    async def delete_code_examples(self, document_id: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM code_examples WHERE document_id = ?", (document_id,)
            )
            await db.commit()
            return cursor.rowcount

    async def save_code_examples(self, examples: list[CodeExample]) -> None:
        if not examples:
            return
        async with self._connect() as db:
            await db.executemany(
                "INSERT INTO code_examples (id, document_id, language, code, position) "
                "VALUES (?, ?, ?, ?, ?)",
                [(e.id, e.document_id, e.language, e.code, e.position) for e in examples],
            )
            await db.commit()

    async def list_code_examples(self, document_id: str) -> list[CodeExample]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, document_id, language, code, position FROM code_examples "
                "WHERE document_id = ? ORDER BY position",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [CodeExample(**dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Sync history
    # ------------------------------------------------------------------

    async def start_sync(self, version_id: str) -> SyncHistory:
        sync_id = str(uuid4())
        started_at = _utcnow()
        async with self._connect() as db:
            try:
                await db.execute(
                    "INSERT INTO sync_history (id, version_id, status, started_at) "
                    "VALUES (?, ?, ?, ?)",
                    (sync_id, version_id, SyncStatus.RUNNING.value, started_at),
                )
                await db.commit()
            except aiosqlite.IntegrityError as exc:
                if "FOREIGN KEY" in str(exc):
                    raise NotFoundError(
                        message=f"Library version '{version_id}' does not exist",
                    ) from exc
                raise ConcurrentRunConflictError(
                    message=f"A sync is already running for version '{version_id}'",
                    version_id=version_id,
                ) from exc

        logger.info("sync_run_started", sync_id=sync_id, version_id=version_id)
        return SyncHistory(
            id=sync_id,
            version_id=version_id,
            status=SyncStatus.RUNNING,
            started_at=started_at,
        )

    async def complete_sync(
        self,
        sync_id: str,
        status: SyncStatus,
        documents_processed: int = 0,
        chunks_created: int = 0,
        error_message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SyncHistory:
        SyncStatus.RUNNING.validate_transition(status)

        async with self._connect() as db:
            cursor = await db.execute(
                _COMPLETE_SYNC_SQL,
                (
                    status.value,
                    _utcnow(),
                    documents_processed,
                    chunks_created,
                    error_message,
                    json.dumps(metadata or {}),
                    sync_id,
                ),
            )
            await db.commit()
            updated = cursor.rowcount

        current = await self.get_sync(sync_id)
        if current is None:
            raise NotFoundError(message=f"Sync run '{sync_id}' does not exist")
        if updated == 0:
            # Terminal rows are immutable.
            raise InvalidStateTransitionError(
                message=(
                    f"Sync run '{sync_id}' is {current.status.value}; "
                    f"cannot move it to {status.value}"
                )
            )
        return current

    async def get_sync(self, sync_id: str) -> SyncHistory | None:
        rows = await self._fetch_syncs(
            f"SELECT {_SYNC_COLUMNS} FROM sync_history WHERE id = ?", (sync_id,)
        )
        return rows[0] if rows else None

    async def get_running_sync(self, version_id: str) -> SyncHistory | None:
        rows = await self._fetch_syncs(
            f"SELECT {_SYNC_COLUMNS} FROM sync_history WHERE version_id = ? AND status = ?",
            (version_id, SyncStatus.RUNNING.value),
        )
        return rows[0] if rows else None

    async def get_latest_terminal_sync(self, version_id: str) -> SyncHistory | None:
        rows = await self._fetch_syncs(
            f"SELECT {_SYNC_COLUMNS} FROM sync_history "
            "WHERE version_id = ? AND status IN (?, ?) "
            "ORDER BY started_at DESC, rowid DESC LIMIT 1",
            (version_id, SyncStatus.SUCCESS.value, SyncStatus.FAILED.value),
        )
        return rows[0] if rows else None

    async def list_sync_history(self, version_id: str, limit: int = 5) -> list[SyncHistory]:
        return await self._fetch_syncs(
            f"SELECT {_SYNC_COLUMNS} FROM sync_history WHERE version_id = ? "
            "ORDER BY started_at DESC, rowid DESC LIMIT ?",
            (version_id, limit),
        )

    async def _fetch_syncs(self, sql: str, params: tuple) -> list[SyncHistory]:
        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_sync(r) for r in rows]


# ---------------------------------------------------------------------------
# Row mapping helpers
# ---------------------------------------------------------------------------


def _row_to_library(row: aiosqlite.Row) -> Library:
    return Library(
        id=row["id"],
        name=row["name"],
        display_name=row["display_name"],
        source_type=SourceType(row["source_type"]),
        source_url=row["source_url"],
        category=row["category"],
        tags=json.loads(row["tags"] or "[]"),
    )


def _row_to_version(row: aiosqlite.Row) -> LibraryVersion:
    return LibraryVersion(
        id=row["id"],
        library_id=row["library_id"],
        version=row["version"],
        is_latest=bool(row["is_latest"]),
        status=row["status"],
        docs_path=row["docs_path"],
    )


def _row_to_document(row: aiosqlite.Row) -> Document:
    return Document(
        id=row["id"],
        version_id=row["version_id"],
        title=row["title"],
        path=row["path"],
        content=row["content"],
        format=row["format"],
        content_hash=row["content_hash"],
        metadata=json.loads(row["metadata"] or "{}"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_sync(row: aiosqlite.Row) -> SyncHistory:
    return SyncHistory(
        id=row["id"],
        version_id=row["version_id"],
        status=SyncStatus(row["status"]),
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        documents_processed=row["documents_processed"],
        chunks_created=row["chunks_created"],
        error_message=row["error_message"],
        metadata=json.loads(row["metadata"] or "{}"),
    )
