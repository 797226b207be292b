"""Document ingestion stages used by the sync orchestrator.

Pipeline stages overview:

1. **Fetch** (content_fetcher.py / ContentFetcher) -- Runs the prioritized
   fetch-strategy chain (archive tarball, git tree, contents API) and reads
   individual files, preferring preloaded archive contents.

2. **Parse** (content_parser.py / ContentParser) -- Picks a format parser by
   file extension and extracts a title, plain content and tagged code
   blocks.

3. **Chunk** (chunker.py / TextChunker) -- Splits content into
   ~1000-character overlapping windows along paragraph and sentence
   boundaries, never splitting a fenced code block.

4. **Embed** (chunk_embedder.py / ChunkEmbedder) -- One batched embedding
   call per document; failures leave the chunks without vectors.
"""

from libdocs.services.ingestion.chunk_embedder import ChunkEmbedder
from libdocs.services.ingestion.chunker import TextChunker
from libdocs.services.ingestion.content_fetcher import ContentFetcher
from libdocs.services.ingestion.content_parser import ContentParser, default_parsers

__all__ = [
    "ChunkEmbedder",
    "ContentFetcher",
    "ContentParser",
    "TextChunker",
    "default_parsers",
]
