"""FTS5/BM25 lexical index over the document store's ``documents`` table.

Query text is reduced to word tokens, each quoted so user input can never
inject FTS5 syntax.  All tokens must match (AND); when that finds nothing
for a multi-word query the search widens to any token (OR).

Scores are ``-bm25(documents_fts, 10.0, 1.0)``: the title column weighs ten
times the body and higher scores rank first.  Equal scores are ordered by
ascending path.
"""

from __future__ import annotations

import re
from pathlib import Path

import aiosqlite
import structlog

from libdocs.interfaces.lexical_index import ILexicalIndex
from libdocs.models.search import SearchResult
from libdocs.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_TITLE_WEIGHT = 10.0
_BODY_WEIGHT = 1.0
SNIPPET_FALLBACK_CHARS = 500

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

_SEARCH_SQL = f"""\
SELECT d.id    AS document_id,
       d.title AS title,
       d.path  AS path,
       snippet(documents_fts, 1, '', '', '...', 32) AS snippet,
       substr(d.content, 1, {SNIPPET_FALLBACK_CHARS + 1}) AS head,
       -bm25(documents_fts, {_TITLE_WEIGHT}, {_BODY_WEIGHT}) AS score
FROM documents_fts
JOIN documents d ON d.rowid = documents_fts.rowid
WHERE documents_fts MATCH ? AND d.version_id = ?
ORDER BY score DESC, d.path ASC
LIMIT ?
"""


def build_match_queries(query: str) -> list[str]:
    """Return FTS5 MATCH expressions to try in order (AND, then OR)."""
    tokens = _TOKEN_RE.findall(query or "")
    if not tokens:
        return []
    quoted = [f'"{t}"' for t in tokens]
    if len(quoted) == 1:
        return quoted
    return [" AND ".join(quoted), " OR ".join(quoted)]


def truncate_snippet(text: str, limit: int = SNIPPET_FALLBACK_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class SqliteLexicalIndex(ILexicalIndex):
    """Keyword search backed by the ``documents_fts`` FTS5 table.

    The table and its sync triggers are created by
    :class:`~libdocs.providers.storage.sqlite_document_store.SqliteDocumentStore`.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)

    async def search(self, version_id: str, query: str, limit: int) -> list[SearchResult]:
        if limit <= 0:
            return []

        rows: list[aiosqlite.Row] = []
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                for match_query in build_match_queries(query):
                    cursor = await db.execute(_SEARCH_SQL, (match_query, version_id, limit))
                    rows = list(await cursor.fetchall())
                    if rows:
                        break
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Full-text query failed: {exc}",
                provider_name="sqlite_fts5",
            ) from exc

        results = [
            SearchResult(
                document_id=r["document_id"],
                title=r["title"],
                path=r["path"],
                snippet=r["snippet"] or truncate_snippet(r["head"] or ""),
                score=float(r["score"]),
            )
            for r in rows
        ]
        logger.debug("lexical_search", version_id=version_id, query=query, results=len(results))
        return results
