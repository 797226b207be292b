"""libdocs domain models -- re-exports all public model classes.

    - library.py  -- Library, LibraryVersion and resolution results
    - document.py -- Document, DocumentChunk, CodeExample
    - parsing.py  -- ParsedDocument and CodeBlock
    - fetch.py    -- FetchResult and FetchedFile
    - sync.py     -- SyncHistory, SyncStatus state machine, status reports
    - search.py   -- lexical and semantic search results
"""

from libdocs.models.document import CodeExample, Document, DocumentChunk
from libdocs.models.fetch import FetchedFile, FetchResult
from libdocs.models.library import (
    Library,
    LibraryVersion,
    ResolvedLibrary,
    SourceType,
    VersionStatus,
)
from libdocs.models.parsing import CodeBlock, ParsedDocument
from libdocs.models.search import (
    ChunkContext,
    SearchResult,
    SemanticSearchResult,
    VectorMatch,
)
from libdocs.models.sync import SweepReport, SyncHistory, SyncStatus, SyncStatusReport

__all__ = [
    "ChunkContext",
    "CodeBlock",
    "CodeExample",
    "Document",
    "DocumentChunk",
    "FetchResult",
    "FetchedFile",
    "Library",
    "LibraryVersion",
    "ParsedDocument",
    "ResolvedLibrary",
    "SearchResult",
    "SemanticSearchResult",
    "SourceType",
    "SweepReport",
    "SyncHistory",
    "SyncStatus",
    "SyncStatusReport",
    "VectorMatch",
    "VersionStatus",
]
