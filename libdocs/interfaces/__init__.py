"""Public interface definitions for every libdocs collaborator.

Business services depend only on these abstract base classes; concrete
adapters live in ``libdocs/providers/`` (and the parsers in
``libdocs/services/ingestion/parsers/``) and are wired together in
``libdocs/main.py``.  Unit tests inject mocks or in-memory fakes instead.

CONCRETE PROVIDER MAP:
    Interface            ->  Concrete implementations
    ----------------------------------------------------------------
    IFetchStrategy       ->  ArchiveFetchStrategy, GitTreeFetchStrategy,
                             ContentsApiFetchStrategy
    IDocumentParser      ->  MarkdownParser, HtmlParser, AsciiDocParser,
                             PlainTextParser
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider, FastEmbedEmbeddingProvider
    IDocumentStore       ->  SqliteDocumentStore
    ILexicalIndex        ->  SqliteLexicalIndex
    IVectorIndex         ->  SqliteVectorIndex, ChromaVectorIndex
"""

from libdocs.interfaces.document_parser import IDocumentParser
from libdocs.interfaces.document_store import IDocumentStore
from libdocs.interfaces.embedding_provider import IEmbeddingProvider
from libdocs.interfaces.fetch_strategy import IFetchStrategy
from libdocs.interfaces.lexical_index import ILexicalIndex
from libdocs.interfaces.vector_index import IVectorIndex

__all__ = [
    "IDocumentParser",
    "IDocumentStore",
    "IEmbeddingProvider",
    "IFetchStrategy",
    "ILexicalIndex",
    "IVectorIndex",
]
