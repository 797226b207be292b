"""Vector index stored alongside the documents in SQLite.

Each chunk vector is a float32 BLOB in ``chunk_vectors``.  Queries load the
vectors of one version and rank them by cosine distance with numpy, which
is plenty for per-version documentation sets of a few thousand chunks and
keeps the deployment to a single database file.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import numpy as np
import structlog

from libdocs.interfaces.vector_index import IVectorIndex
from libdocs.models.document import DocumentChunk
from libdocs.models.search import VectorMatch
from libdocs.utils.errors import EmbeddingError, PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS chunk_vectors (
    chunk_id     TEXT PRIMARY KEY,
    document_id  TEXT NOT NULL,
    version_id   TEXT NOT NULL,
    path         TEXT NOT NULL,
    chunk_index  INTEGER NOT NULL,
    vector       BLOB NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunk_vectors_version ON chunk_vectors(version_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunk_vectors_document ON chunk_vectors(document_id);",
]


class SqliteVectorIndex(IVectorIndex):
    """Cosine nearest-neighbour search over float32 BLOBs."""

    def __init__(self, db_path: str | Path, dimension: int) -> None:
        self._db_path = Path(db_path)
        self._dimension = dimension

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to create vector table: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("vector_index_initialized", backend="sqlite", dimension=self._dimension)

    async def upsert(self, version_id: str, path: str, chunks: list[DocumentChunk]) -> int:
        rows = []
        for chunk in chunks:
            if chunk.embedding is None:
                continue
            self._check_dimension(chunk.embedding)
            blob = np.asarray(chunk.embedding, dtype=np.float32).tobytes()
            rows.append((chunk.id, chunk.document_id, version_id, path, chunk.chunk_index, blob))
        if not rows:
            return 0

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.executemany(
                    "INSERT OR REPLACE INTO chunk_vectors "
                    "(chunk_id, document_id, version_id, path, chunk_index, vector) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    rows,
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to store vectors: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return len(rows)

    async def delete_by_document(self, document_id: str) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("DELETE FROM chunk_vectors WHERE document_id = ?", (document_id,))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to delete vectors: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def query_nearest(
        self, version_id: str, vector: list[float], limit: int
    ) -> list[VectorMatch]:
        self._check_dimension(vector)
        if limit <= 0:
            return []

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT chunk_id, document_id, path, chunk_index, vector "
                    "FROM chunk_vectors WHERE version_id = ?",
                    (version_id,),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Vector query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not rows:
            return []

        matrix = np.vstack([np.frombuffer(r["vector"], dtype=np.float32) for r in rows]).astype(
            np.float64
        )
        query = np.asarray(vector, dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        similarities = np.divide(
            matrix @ query,
            norms,
            out=np.zeros(len(rows), dtype=np.float64),
            where=norms > 0,
        )
        distances = 1.0 - similarities

        matches = [
            VectorMatch(
                chunk_id=r["chunk_id"],
                document_id=r["document_id"],
                path=r["path"],
                chunk_index=r["chunk_index"],
                distance=float(d),
            )
            for r, d in zip(rows, distances)
        ]
        matches.sort(key=lambda m: (m.distance, m.path, m.chunk_index))
        return matches[:limit]

    async def count(self, version_id: str) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "SELECT COUNT(*) FROM chunk_vectors WHERE version_id = ?", (version_id,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Vector count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return int(row[0]) if row else 0

    def get_dimension(self) -> int:
        return self._dimension

    @staticmethod
    def get_provider_name() -> str:
        return "sqlite_vectors"

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self._dimension:
            raise EmbeddingError(
                message=(
                    f"Vector has {len(vector)} dimensions; index expects {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )
