"""Shared pytest fixtures for the libdocs test suite."""

from __future__ import annotations

import hashlib
import io
import math
import re
import tarfile
from collections.abc import Callable
from pathlib import Path

import pytest

from libdocs.interfaces.embedding_provider import IEmbeddingProvider
from libdocs.models.library import Library, LibraryVersion, SourceType
from libdocs.providers.storage.sqlite_document_store import SqliteDocumentStore
from libdocs.providers.storage.sqlite_lexical_index import SqliteLexicalIndex
from libdocs.providers.vector_store.sqlite_vector_index import SqliteVectorIndex

# ---------------------------------------------------------------------------
# Embedding fixtures
# ---------------------------------------------------------------------------

EMBEDDING_DIM = 64

_WORD_RE = re.compile(r"\w+")


def bag_of_words_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Deterministic unit vector built by hashing each word into a bucket.

    Texts sharing words get a positive cosine similarity, so semantic
    search results are predictable without a real model.
    """
    values = [0.0] * dim
    for word in _WORD_RE.findall(text.lower()):
        bucket = int(hashlib.sha256(word.encode("utf-8")).hexdigest(), 16) % dim
        values[bucket] += 1.0
    magnitude = math.sqrt(sum(v * v for v in values))
    if magnitude == 0:
        return values
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    Records every ``embed`` call; set ``fail_with`` to make the next calls
    raise.
    """

    def __init__(self, dim: int = EMBEDDING_DIM) -> None:
        self._dim = dim
        self.calls: list[list[str]] = []
        self.fail_with: Exception | None = None

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_with is not None:
            raise self.fail_with
        return [bag_of_words_vector(t, self._dim) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dim

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    """Mock IEmbeddingProvider returning bag-of-words vectors."""
    return MockEmbeddingProvider()


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "libdocs.db"


@pytest.fixture
async def store(db_path: Path) -> SqliteDocumentStore:
    """Initialized SQLite document store in a temp directory."""
    document_store = SqliteDocumentStore(db_path=db_path)
    await document_store.initialize()
    return document_store


@pytest.fixture
def lexical_index(db_path: Path, store: SqliteDocumentStore) -> SqliteLexicalIndex:
    return SqliteLexicalIndex(db_path=db_path)


@pytest.fixture
async def vector_index(db_path: Path, store: SqliteDocumentStore) -> SqliteVectorIndex:
    index = SqliteVectorIndex(db_path=db_path, dimension=EMBEDDING_DIM)
    await index.initialize()
    return index


@pytest.fixture
async def react_library(store: SqliteDocumentStore) -> Library:
    return await store.save_library(
        Library(
            id="lib-react",
            name="react",
            display_name="React",
            source_type=SourceType.GITHUB,
            source_url="https://github.com/facebook/react",
            category="frontend",
            tags=["ui", "javascript"],
        )
    )


@pytest.fixture
async def react_version(store: SqliteDocumentStore, react_library: Library) -> LibraryVersion:
    """React 18.2.0, marked latest, docs under ``docs/``."""
    return await store.save_version(
        LibraryVersion(
            id="ver-react-18",
            library_id=react_library.id,
            version="18.2.0",
            is_latest=True,
            docs_path="docs",
        )
    )


# ---------------------------------------------------------------------------
# Archive fixtures
# ---------------------------------------------------------------------------


def build_tarball(files: dict[str, str | bytes], root: str = "react-18.2.0") -> bytes:
    """Return a gzip tarball with *files* under a GitHub-style root directory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        root_info = tarfile.TarInfo(name=root)
        root_info.type = tarfile.DIRTYPE
        archive.addfile(root_info)
        for path, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(name=f"{root}/{path}")
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def tarball_factory() -> Callable[..., bytes]:
    return build_tarball


@pytest.fixture
def react_docs() -> dict[str, str]:
    """A small React documentation tree as it appears in the tag tarball."""
    return {
        "README.md": "# React\n\nNot part of the docs directory.\n",
        "docs/hooks.md": (
            "# Hooks\n\n"
            "Hooks let you use state and other React features without writing a class.\n\n"
            "```jsx\n"
            "const [count, setCount] = useState(0);\n"
            "```\n"
        ),
        "docs/components.md": (
            "# Components\n\n"
            "Components let you split the UI into independent, reusable pieces.\n"
        ),
        "docs/guide/effects.md": (
            "# Effects\n\n"
            "The effect hook lets you perform side effects in function components.\n\n"
            "```js\n"
            "useEffect(() => { document.title = 'hi'; });\n"
            "```\n"
        ),
        "docs/logo.png": "not really a png",
    }
