"""libdocs -- versioned library documentation sync and hybrid search.

The package keeps a searchable knowledge base of third-party library
documentation.  Documentation files are pulled from GitHub through a chain
of fetch strategies, parsed into structured documents, chunked, embedded,
and indexed for both keyword (FTS5) and vector-similarity retrieval.
"""

__version__ = "0.1.0"
