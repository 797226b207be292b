"""Abstract base class for the relational documentation store.

The store owns libraries, versions, documents, chunks, code examples and
sync history.  The sync orchestrator is its only writer for documents,
chunks and sync rows; search and library services only read.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from libdocs.models.document import CodeExample, Document, DocumentChunk
from libdocs.models.library import Library, LibraryVersion, SourceType
from libdocs.models.search import ChunkContext
from libdocs.models.sync import SyncHistory, SyncStatus


# Concrete implementation: SqliteDocumentStore
# Located in: libdocs/providers/storage/
class IDocumentStore(ABC):
    """Contract for keyed persistence of the documentation index.

    Every method raises :class:`~libdocs.utils.errors.PersistenceError`
    when the underlying storage fails.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables, indices and triggers if they don't exist."""

    # -- Libraries & versions ---------------------------------------------

    @abstractmethod
    async def save_library(self, library: Library) -> Library:
        """Insert or update *library* keyed on its unique name."""

    @abstractmethod
    async def get_library(self, identifier: str) -> Library | None:
        """Look a library up by id, falling back to its unique name."""

    @abstractmethod
    async def list_libraries(self, source_type: SourceType | None = None) -> list[Library]:
        """Return libraries ordered by name, optionally filtered by source."""

    @abstractmethod
    async def save_version(self, version: LibraryVersion) -> LibraryVersion:
        """Insert or update *version* keyed on ``(library_id, version)``.

        Saving a version with ``is_latest=True`` clears the flag on every
        other version of the same library in the same transaction.
        """

    @abstractmethod
    async def get_version(self, library_id: str, version: str) -> LibraryVersion | None:
        """Return the version of *library_id* named *version*."""

    @abstractmethod
    async def get_version_by_id(self, version_id: str) -> LibraryVersion | None:
        """Return a version by primary key."""

    @abstractmethod
    async def get_latest_version(self, library_id: str) -> LibraryVersion | None:
        """Return the version flagged ``is_latest`` for *library_id*."""

    @abstractmethod
    async def list_versions(self, library_id: str) -> list[LibraryVersion]:
        """Return all versions of *library_id* ordered by version string."""

    # -- Documents ---------------------------------------------------------

    @abstractmethod
    async def get_document(self, version_id: str, path: str) -> Document | None:
        """Return the document stored at *path* for *version_id*."""

    @abstractmethod
    async def save_document(self, document: Document) -> Document:
        """Upsert *document* keyed on ``(version_id, path)``.

        An existing row keeps its id; the returned model carries the id that
        was actually stored.
        """

    @abstractmethod
    async def set_content_hash(self, document_id: str, content_hash: str) -> None:
        """Record *content_hash* once every row derived from the document is written."""

    @abstractmethod
    async def list_document_paths(self, version_id: str) -> list[str]:
        """Return the paths of every document stored for *version_id*."""

    # -- Chunks & code examples -------------------------------------------

    @abstractmethod
    async def delete_chunks(self, document_id: str) -> int:
        """Delete all chunks of *document_id*; returns the number removed."""

    @abstractmethod
    async def save_chunks(self, chunks: list[DocumentChunk]) -> None:
        """Insert *chunks*; indices must be contiguous from zero per document."""

    @abstractmethod
    async def list_chunks(self, document_id: str) -> list[DocumentChunk]:
        """Return the chunks of *document_id* ordered by ``chunk_index``."""

    @abstractmethod
    async def get_chunk_contexts(self, chunk_ids: list[str]) -> list[ChunkContext]:
        """Return chunk text joined with document title/path for *chunk_ids*."""

    @abstractmethod
    async def delete_code_examples(self, document_id: str) -> int:
        """Delete all code examples of *document_id*."""

    @abstractmethod
    async def save_code_examples(self, examples: list[CodeExample]) -> None:
        """Insert *examples*."""

    @abstractmethod
    async def list_code_examples(self, document_id: str) -> list[CodeExample]:
        """Return code examples of *document_id* in document order."""

    # -- Sync history ------------------------------------------------------

    @abstractmethod
    async def start_sync(self, version_id: str) -> SyncHistory:
        """Atomically insert a RUNNING sync row for *version_id*.

        Raises
        ------
        libdocs.utils.errors.ConcurrentRunConflictError
            If a RUNNING row already exists for the version.
        """

    @abstractmethod
    async def complete_sync(
        self,
        sync_id: str,
        status: SyncStatus,
        documents_processed: int = 0,
        chunks_created: int = 0,
        error_message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SyncHistory:
        """Move a RUNNING sync row to the terminal *status*.

        Raises
        ------
        libdocs.utils.errors.InvalidStateTransitionError
            If *status* is not terminal or the row is no longer RUNNING.
        libdocs.utils.errors.NotFoundError
            If no row has id *sync_id*.
        """

    @abstractmethod
    async def get_sync(self, sync_id: str) -> SyncHistory | None:
        """Return a sync row by id."""

    @abstractmethod
    async def get_running_sync(self, version_id: str) -> SyncHistory | None:
        """Return the RUNNING row for *version_id*, if any."""

    @abstractmethod
    async def get_latest_terminal_sync(self, version_id: str) -> SyncHistory | None:
        """Return the most recently started SUCCESS/FAILED row."""

    @abstractmethod
    async def list_sync_history(self, version_id: str, limit: int = 5) -> list[SyncHistory]:
        """Return the newest *limit* sync rows of *version_id*."""
