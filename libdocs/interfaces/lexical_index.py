"""Abstract base class for keyword-ranked document search."""

from __future__ import annotations

from abc import ABC, abstractmethod

from libdocs.models.search import SearchResult


class ILexicalIndex(ABC):
    """Ranked keyword search scoped to one library version.

    The index is kept current by the document store itself (FTS5 content
    triggers), so it exposes no write methods of its own.
    """

    @abstractmethod
    async def search(self, version_id: str, query: str, limit: int) -> list[SearchResult]:
        """Return up to *limit* documents of *version_id* matching *query*.

        Results are ordered by descending score, where title matches weigh
        more than body matches; equal scores are ordered by ascending path.
        An empty or all-punctuation query returns ``[]``.
        """
