"""SQLite storage: relational document store and its FTS5 lexical index."""

from libdocs.providers.storage.sqlite_document_store import SqliteDocumentStore
from libdocs.providers.storage.sqlite_lexical_index import SqliteLexicalIndex

__all__ = ["SqliteDocumentStore", "SqliteLexicalIndex"]
