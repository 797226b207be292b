"""Unit tests for SqliteDocumentStore: catalogue, documents, chunks and sync runs."""

from __future__ import annotations

import asyncio

import pytest

from libdocs.models.document import CodeExample, Document, DocumentChunk
from libdocs.models.library import Library, LibraryVersion, SourceType
from libdocs.models.sync import SyncStatus
from libdocs.providers.storage.sqlite_document_store import SqliteDocumentStore
from libdocs.utils.errors import (
    ConcurrentRunConflictError,
    InvalidStateTransitionError,
    NotFoundError,
)


def _document(version_id: str, path: str, content: str = "body", doc_id: str | None = None):
    return Document(
        id=doc_id or f"doc-{path}",
        version_id=version_id,
        title=path.rsplit("/", 1)[-1],
        path=path,
        content=content,
        format="markdown",
        content_hash=f"hash-{content}",
        metadata={"path": path},
    )


class TestCatalogue:
    async def test_library_lookup_by_id_or_name(self, store, react_library) -> None:
        assert (await store.get_library("lib-react")).name == "react"
        assert (await store.get_library("react")).id == "lib-react"
        assert await store.get_library("vue") is None
        assert react_library.tags == ["ui", "javascript"]

    async def test_list_libraries_filters_by_source_type(self, store, react_library) -> None:
        await store.save_library(
            Library(id="lib-local", name="internal", source_type=SourceType.LOCAL)
        )
        assert [lib.name for lib in await store.list_libraries()] == ["internal", "react"]
        github = await store.list_libraries(SourceType.GITHUB)
        assert [lib.name for lib in github] == ["react"]

    async def test_only_one_latest_version(self, store, react_library, react_version) -> None:
        await store.save_version(
            LibraryVersion(
                id="ver-react-19", library_id=react_library.id, version="19.0.0", is_latest=True
            )
        )
        latest = await store.get_latest_version(react_library.id)
        assert latest.version == "19.0.0"
        old = await store.get_version(react_library.id, "18.2.0")
        assert old.is_latest is False
        assert len(await store.list_versions(react_library.id)) == 2

    async def test_version_by_id(self, store, react_version) -> None:
        assert (await store.get_version_by_id("ver-react-18")).docs_path == "docs"
        assert await store.get_version_by_id("missing") is None


class TestDocuments:
    async def test_upsert_keeps_identity_per_path(self, store, react_version) -> None:
        first = await store.save_document(_document(react_version.id, "docs/a.md", "one"))
        second = await store.save_document(
            _document(react_version.id, "docs/a.md", "two", doc_id="other-id")
        )

        assert second.id == first.id
        assert second.content == "two"
        assert second.content_hash == "hash-two"
        assert second.metadata == {"path": "docs/a.md"}
        assert await store.list_document_paths(react_version.id) == ["docs/a.md"]

    async def test_set_content_hash(self, store, lexical_index, react_version) -> None:
        saved = await store.save_document(_document(react_version.id, "docs/a.md", "hooks"))

        await store.set_content_hash(saved.id, "final-hash")

        stored = await store.get_document(react_version.id, "docs/a.md")
        assert stored.content_hash == "final-hash"
        assert stored.content == "hooks"
        results = await lexical_index.search(react_version.id, "hooks", 10)
        assert [r.document_id for r in results] == [saved.id]

    async def test_missing_document(self, store, react_version) -> None:
        assert await store.get_document(react_version.id, "docs/none.md") is None

    async def test_chunks_round_trip_and_delete(self, store, react_version) -> None:
        doc = await store.save_document(_document(react_version.id, "docs/a.md"))
        await store.save_chunks(
            [
                DocumentChunk(id="c1", document_id=doc.id, chunk_index=1, text="second"),
                DocumentChunk(
                    id="c0",
                    document_id=doc.id,
                    chunk_index=0,
                    text="first",
                    embedding=[0.1, 0.2],
                ),
            ]
        )

        chunks = await store.list_chunks(doc.id)
        assert [(c.chunk_index, c.text, c.embedded) for c in chunks] == [
            (0, "first", True),
            (1, "second", False),
        ]
        assert all(c.embedding is None for c in chunks)

        contexts = await store.get_chunk_contexts(["c1", "unknown"])
        assert len(contexts) == 1
        assert contexts[0].title == "a.md"
        assert contexts[0].path == "docs/a.md"

        assert await store.delete_chunks(doc.id) == 2
        assert await store.list_chunks(doc.id) == []

    async def test_code_examples_ordered(self, store, react_version) -> None:
        doc = await store.save_document(_document(react_version.id, "docs/a.md"))
        await store.save_code_examples(
            [
                CodeExample(id="e2", document_id=doc.id, language="js", code="b()", position=1),
                CodeExample(id="e1", document_id=doc.id, language="jsx", code="a()", position=0),
            ]
        )
        examples = await store.list_code_examples(doc.id)
        assert [e.code for e in examples] == ["a()", "b()"]
        assert await store.delete_code_examples(doc.id) == 2


class TestSyncRuns:
    async def test_start_and_complete(self, store, react_version) -> None:
        run = await store.start_sync(react_version.id)
        assert run.status is SyncStatus.RUNNING
        assert (await store.get_running_sync(react_version.id)).id == run.id

        done = await store.complete_sync(
            run.id,
            SyncStatus.SUCCESS,
            documents_processed=3,
            chunks_created=7,
            metadata={"strategy_used": "github_archive"},
        )

        assert done.status is SyncStatus.SUCCESS
        assert done.completed_at is not None
        assert (done.documents_processed, done.chunks_created) == (3, 7)
        assert done.metadata["strategy_used"] == "github_archive"
        assert await store.get_running_sync(react_version.id) is None
        assert (await store.get_latest_terminal_sync(react_version.id)).id == run.id

    async def test_second_running_sync_is_rejected(self, store, react_version) -> None:
        await store.start_sync(react_version.id)
        with pytest.raises(ConcurrentRunConflictError) as excinfo:
            await store.start_sync(react_version.id)
        assert excinfo.value.version_id == react_version.id

    async def test_concurrent_starts_admit_exactly_one(self, store, react_version) -> None:
        results = await asyncio.gather(
            *(store.start_sync(react_version.id) for _ in range(5)), return_exceptions=True
        )
        started = [r for r in results if not isinstance(r, Exception)]
        conflicts = [r for r in results if isinstance(r, ConcurrentRunConflictError)]
        assert len(started) == 1
        assert len(conflicts) == 4

    async def test_new_run_allowed_after_completion(self, store, react_version) -> None:
        first = await store.start_sync(react_version.id)
        await store.complete_sync(first.id, SyncStatus.FAILED, error_message="boom")
        second = await store.start_sync(react_version.id)

        history = await store.list_sync_history(react_version.id)
        assert [h.id for h in history] == [second.id, first.id]
        assert history[1].error_message == "boom"

    async def test_terminal_rows_are_immutable(self, store, react_version) -> None:
        run = await store.start_sync(react_version.id)
        await store.complete_sync(run.id, SyncStatus.SUCCESS)
        with pytest.raises(InvalidStateTransitionError):
            await store.complete_sync(run.id, SyncStatus.FAILED)
        assert (await store.get_sync(run.id)).status is SyncStatus.SUCCESS

    async def test_complete_to_non_terminal_status_rejected(self, store, react_version) -> None:
        run = await store.start_sync(react_version.id)
        with pytest.raises(InvalidStateTransitionError):
            await store.complete_sync(run.id, SyncStatus.PENDING)

    async def test_unknown_version_or_run(self, store: SqliteDocumentStore) -> None:
        with pytest.raises(NotFoundError):
            await store.start_sync("no-such-version")
        with pytest.raises(NotFoundError):
            await store.complete_sync("no-such-run", SyncStatus.SUCCESS)

    async def test_history_limit(self, store, react_version) -> None:
        for _ in range(7):
            run = await store.start_sync(react_version.id)
            await store.complete_sync(run.id, SyncStatus.SUCCESS)
        assert len(await store.list_sync_history(react_version.id)) == 5
        assert len(await store.list_sync_history(react_version.id, limit=10)) == 7
