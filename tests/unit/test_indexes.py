"""Unit tests for the FTS5 lexical index and both vector index backends."""

from __future__ import annotations

from pathlib import Path

import pytest

from libdocs.models.document import Document, DocumentChunk
from libdocs.models.library import LibraryVersion
from libdocs.providers.storage.sqlite_lexical_index import (
    build_match_queries,
    truncate_snippet,
)
from libdocs.providers.vector_store.chromadb_vector_index import ChromaVectorIndex
from libdocs.providers.vector_store.sqlite_vector_index import SqliteVectorIndex
from libdocs.utils.errors import EmbeddingError


async def _save(store, version_id: str, path: str, title: str, content: str) -> Document:
    return await store.save_document(
        Document(
            id=f"{version_id}:{path}",
            version_id=version_id,
            title=title,
            path=path,
            content=content,
            format="markdown",
            content_hash=path,
        )
    )


def _chunk(chunk_id: str, document_id: str, index: int, vector: list[float] | None):
    return DocumentChunk(
        id=chunk_id,
        document_id=document_id,
        chunk_index=index,
        text=f"text {chunk_id}",
        embedding=vector,
    )


# ======================================================================
# Lexical index
# ======================================================================


class TestMatchQueries:
    def test_tokens_are_quoted(self) -> None:
        assert build_match_queries("use state") == ['"use" AND "state"', '"use" OR "state"']

    def test_fts_syntax_is_neutralised(self) -> None:
        assert build_match_queries('title:hooks OR "x') == [
            '"title" AND "hooks" AND "OR" AND "x"',
            '"title" OR "hooks" OR "OR" OR "x"',
        ]

    def test_blank_query(self) -> None:
        assert build_match_queries("  ?! ") == []

    def test_truncate_snippet(self) -> None:
        assert truncate_snippet("short") == "short"
        assert truncate_snippet("x" * 600) == "x" * 500 + "..."


class TestSqliteLexicalIndex:
    async def test_title_match_outranks_body_match(
        self, store, lexical_index, react_version
    ) -> None:
        await _save(store, react_version.id, "docs/a.md", "Overview", "Mentions suspense once.")
        await _save(store, react_version.id, "docs/b.md", "Suspense", "Loading boundaries.")

        results = await lexical_index.search(react_version.id, "suspense", 10)

        assert [r.path for r in results] == ["docs/b.md", "docs/a.md"]
        assert results[0].score >= results[1].score

    async def test_equal_scores_order_by_path(self, store, lexical_index, react_version) -> None:
        for path in ("docs/z.md", "docs/m.md", "docs/a.md"):
            await _save(store, react_version.id, path, "Hooks", "Hooks are functions.")

        results = await lexical_index.search(react_version.id, "hooks", 10)
        assert [r.path for r in results] == ["docs/a.md", "docs/m.md", "docs/z.md"]

    async def test_scoped_to_version(self, store, lexical_index, react_library, react_version):
        other = await store.save_version(
            LibraryVersion(id="ver-react-17", library_id=react_library.id, version="17.0.2")
        )
        await _save(store, react_version.id, "docs/a.md", "Hooks", "New in 18.")
        await _save(store, other.id, "docs/a.md", "Hooks", "Old in 17.")

        results = await lexical_index.search(other.id, "hooks", 10)
        assert [r.document_id for r in results] == [f"{other.id}:docs/a.md"]

    async def test_or_fallback_when_and_finds_nothing(
        self, store, lexical_index, react_version
    ) -> None:
        await _save(store, react_version.id, "docs/a.md", "Effects", "useEffect runs after render.")
        results = await lexical_index.search(react_version.id, "render zeppelin", 10)
        assert [r.path for r in results] == ["docs/a.md"]

    async def test_updates_are_visible(self, store, lexical_index, react_version) -> None:
        await _save(store, react_version.id, "docs/a.md", "Intro", "Talks about portals.")
        await _save(store, react_version.id, "docs/a.md", "Intro", "Talks about refs.")

        assert await lexical_index.search(react_version.id, "portals", 10) == []
        assert len(await lexical_index.search(react_version.id, "refs", 10)) == 1

    async def test_limit_and_empty_inputs(self, store, lexical_index, react_version) -> None:
        for i in range(5):
            await _save(store, react_version.id, f"docs/{i}.md", "Hooks", "hooks")
        assert len(await lexical_index.search(react_version.id, "hooks", 2)) == 2
        assert await lexical_index.search(react_version.id, "hooks", 0) == []
        assert await lexical_index.search(react_version.id, "   ", 10) == []

    async def test_snippet_present(self, store, lexical_index, react_version) -> None:
        await _save(store, react_version.id, "docs/a.md", "Context", "Context passes data deeply.")
        (result,) = await lexical_index.search(react_version.id, "deeply", 10)
        assert "deeply" in result.snippet


# ======================================================================
# Vector indexes
# ======================================================================


@pytest.fixture(params=["sqlite", "chromadb"])
async def any_vector_index(request, tmp_path: Path):
    """Both vector backends, 3-dimensional."""
    if request.param == "sqlite":
        index = SqliteVectorIndex(db_path=tmp_path / "vectors.db", dimension=3)
    else:
        index = ChromaVectorIndex(
            dimension=3,
            persist_directory=str(tmp_path / "chroma"),
            collection_name="test_chunks",
        )
    await index.initialize()
    return index


class TestVectorIndexes:
    async def test_nearest_ordering(self, any_vector_index) -> None:
        written = await any_vector_index.upsert(
            "v1",
            "docs/a.md",
            [
                _chunk("a0", "doc-a", 0, [1.0, 0.0, 0.0]),
                _chunk("a1", "doc-a", 1, [0.0, 1.0, 0.0]),
                _chunk("a2", "doc-a", 2, [0.7, 0.7, 0.0]),
            ],
        )
        assert written == 3

        matches = await any_vector_index.query_nearest("v1", [1.0, 0.0, 0.0], 3)

        assert [m.chunk_id for m in matches] == ["a0", "a2", "a1"]
        assert matches[0].distance == pytest.approx(0.0, abs=1e-4)
        assert matches[-1].distance == pytest.approx(1.0, abs=1e-4)
        assert matches[0].path == "docs/a.md"

    async def test_chunks_without_embedding_are_skipped(self, any_vector_index) -> None:
        written = await any_vector_index.upsert(
            "v1", "docs/a.md", [_chunk("a0", "doc-a", 0, None), _chunk("a1", "doc-a", 1, [1, 0, 0])]
        )
        assert written == 1
        assert await any_vector_index.count("v1") == 1

    async def test_version_scoping_and_delete(self, any_vector_index) -> None:
        await any_vector_index.upsert("v1", "docs/a.md", [_chunk("a0", "doc-a", 0, [1, 0, 0])])
        await any_vector_index.upsert("v2", "docs/a.md", [_chunk("b0", "doc-b", 0, [1, 0, 0])])

        matches = await any_vector_index.query_nearest("v2", [1.0, 0.0, 0.0], 10)
        assert [m.chunk_id for m in matches] == ["b0"]

        await any_vector_index.delete_by_document("doc-b")
        assert await any_vector_index.query_nearest("v2", [1.0, 0.0, 0.0], 10) == []
        assert await any_vector_index.count("v1") == 1

    async def test_limit(self, any_vector_index) -> None:
        chunks = [_chunk(f"c{i}", "doc", i, [1.0, float(i), 0.0]) for i in range(5)]
        await any_vector_index.upsert("v1", "docs/a.md", chunks)
        assert len(await any_vector_index.query_nearest("v1", [1.0, 0.0, 0.0], 2)) == 2

    async def test_dimension_mismatch_raises(self, any_vector_index) -> None:
        with pytest.raises(EmbeddingError):
            await any_vector_index.upsert("v1", "docs/a.md", [_chunk("x", "d", 0, [1.0, 0.0])])
        with pytest.raises(EmbeddingError):
            await any_vector_index.query_nearest("v1", [1.0], 5)

    async def test_empty_version(self, any_vector_index) -> None:
        assert await any_vector_index.query_nearest("nothing", [1.0, 0.0, 0.0], 5) == []
        assert await any_vector_index.count("nothing") == 0


class TestChromaVectorIndex:
    async def test_query_does_not_scan_version_rows(self, tmp_path: Path, monkeypatch) -> None:
        index = ChromaVectorIndex(
            dimension=3,
            persist_directory=str(tmp_path / "chroma"),
            collection_name="scoped_chunks",
        )
        await index.initialize()
        await index.upsert("v1", "docs/a.md", [_chunk("a0", "doc-a", 0, [1, 0, 0])])
        await index.upsert(
            "v2", "docs/b.md", [_chunk(f"b{i}", "doc-b", i, [1, i, 0]) for i in range(3)]
        )

        async def no_count(version_id: str) -> int:
            raise AssertionError("query_nearest must not list the version's rows")

        monkeypatch.setattr(index, "count", no_count)
        matches = await index.query_nearest("v2", [1.0, 0.0, 0.0], 50)

        assert [m.chunk_id for m in matches] == ["b0", "b1", "b2"]


class TestSqliteVectorIndexTies:
    async def test_equal_distances_order_by_path_then_index(self, tmp_path: Path) -> None:
        index = SqliteVectorIndex(db_path=tmp_path / "v.db", dimension=2)
        await index.initialize()
        await index.upsert("v1", "docs/b.md", [_chunk("b0", "db", 0, [1.0, 0.0])])
        await index.upsert(
            "v1",
            "docs/a.md",
            [_chunk("a1", "da", 1, [1.0, 0.0]), _chunk("a0", "da", 0, [1.0, 0.0])],
        )

        matches = await index.query_nearest("v1", [2.0, 0.0], 10)
        assert [m.chunk_id for m in matches] == ["a0", "a1", "b0"]

    async def test_zero_vector_has_zero_similarity(self, tmp_path: Path) -> None:
        index = SqliteVectorIndex(db_path=tmp_path / "v.db", dimension=2)
        await index.initialize()
        await index.upsert("v1", "docs/a.md", [_chunk("z", "d", 0, [0.0, 0.0])])
        (match,) = await index.query_nearest("v1", [1.0, 0.0], 10)
        assert match.distance == pytest.approx(1.0)
