"""Library catalogue lookups and sync-status reporting."""

from __future__ import annotations

import structlog

from libdocs.interfaces.document_store import IDocumentStore
from libdocs.models.library import Library, LibraryVersion, ResolvedLibrary, SourceType
from libdocs.models.sync import SyncStatusReport
from libdocs.utils.errors import NotFoundError

logger = structlog.get_logger(logger_name=__name__)

_RECENT_RUNS = 5


class LibraryService:
    """Resolves (library, version) pairs and reports their sync state.

    Libraries may be addressed by id or by name.  An omitted version
    resolves to the library's ``is_latest`` version.
    """

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def resolve_library(self, library: str, version: str | None = None) -> ResolvedLibrary:
        """Resolve *library* and an optional *version* string.

        Version strings match exactly first, then with a leading ``v``
        added or removed, so ``"v18.2.0"`` finds a version stored as
        ``"18.2.0"``.

        Raises
        ------
        NotFoundError
            If the library, the requested version, or (when *version* is
            omitted) a latest version does not exist.
        """
        lib = await self._store.get_library(library)
        if lib is None:
            raise NotFoundError(message=f"Library '{library}' not found")

        if version:
            found = await self._find_version(lib, version)
            if found is None:
                raise NotFoundError(
                    message=f"Version '{version}' of library '{lib.name}' not found"
                )
        else:
            found = await self._store.get_latest_version(lib.id)
            if found is None:
                raise NotFoundError(
                    message=f"Library '{lib.name}' has no version marked as latest"
                )

        return ResolvedLibrary(library=lib, version=found, resolved_version=found.version)

    async def get_sync_status(self, library: str, version: str | None = None) -> SyncStatusReport:
        """Report whether a sync is running and the latest terminal outcome."""
        resolved = await self.resolve_library(library, version)
        version_id = resolved.version.id

        running = await self._store.get_running_sync(version_id)
        latest = await self._store.get_latest_terminal_sync(version_id)
        recent = await self._store.list_sync_history(version_id, limit=_RECENT_RUNS)

        return SyncStatusReport(
            library_name=resolved.library.name,
            version=resolved.resolved_version,
            is_running=running is not None,
            running_run=running,
            latest_run=latest,
            recent_runs=recent,
        )

    async def list_libraries(self, source_type: SourceType | None = None) -> list[Library]:
        return await self._store.list_libraries(source_type)

    async def list_versions(self, library: str) -> list[LibraryVersion]:
        lib = await self._store.get_library(library)
        if lib is None:
            raise NotFoundError(message=f"Library '{library}' not found")
        return await self._store.list_versions(lib.id)

    async def _find_version(self, lib: Library, version: str) -> LibraryVersion | None:
        candidates = [version]
        if version.startswith("v"):
            candidates.append(version[1:])
        else:
            candidates.append(f"v{version}")

        for candidate in candidates:
            found = await self._store.get_version(lib.id, candidate)
            if found is not None:
                return found
        return None
