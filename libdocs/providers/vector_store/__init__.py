"""Vector index implementations.

    - SqliteVectorIndex  -- vectors stored in the main SQLite database.
    - ChromaVectorIndex  -- persistent ChromaDB collection; imported from its
      module so chromadb only loads when that backend is configured.
"""

from libdocs.providers.vector_store.sqlite_vector_index import SqliteVectorIndex

__all__ = ["SqliteVectorIndex"]
