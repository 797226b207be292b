"""Periodic sweep that re-syncs every ACTIVE version of GitHub libraries."""

from __future__ import annotations

import re

import structlog

from libdocs.interfaces.document_store import IDocumentStore
from libdocs.models.library import Library, SourceType, VersionStatus
from libdocs.models.sync import SweepReport, SyncStatus
from libdocs.services.sync_service import SyncService
from libdocs.utils.errors import ConcurrentRunConflictError, LibDocsError

logger = structlog.get_logger(logger_name=__name__)

_GITHUB_URL_RE = re.compile(r"^https?://(?:www\.)?github\.com/([^/\s]+)/([^/\s#?]+)")
_DEFAULT_DOCS_PATH = "docs"


def parse_github_url(url: str) -> tuple[str, str] | None:
    """Return ``(owner, repo)`` for a GitHub repository URL, else ``None``."""
    match = _GITHUB_URL_RE.match(url.strip())
    if not match:
        return None
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        return None
    return owner, repo


class SyncScheduler:
    """Runs :class:`SyncService` over the whole catalogue.

    Failures of one version never stop the sweep; they are logged and
    counted in the returned :class:`SweepReport`.  A version that is
    already syncing is counted as skipped.
    """

    def __init__(
        self,
        store: IDocumentStore,
        sync_service: SyncService,
        enabled: bool = False,
        default_docs_path: str = _DEFAULT_DOCS_PATH,
    ) -> None:
        self._store = store
        self._sync = sync_service
        self._enabled = enabled
        self._default_docs_path = default_docs_path

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def run_all(self) -> SweepReport:
        """Scheduled sweep over every GitHub library.  No-op when disabled."""
        if not self._enabled:
            logger.info("sync_sweep_disabled")
            return SweepReport()

        totals = SweepReport()
        libraries = await self._store.list_libraries(SourceType.GITHUB)
        logger.info("sync_sweep_started", libraries=len(libraries))
        for library in libraries:
            totals = _add(totals, await self._sweep_library(library))

        logger.info("sync_sweep_completed", **totals.model_dump())
        return totals

    async def run_library(self, library: str) -> SweepReport:
        """On-demand sweep of one library (id or name), regardless of ``enabled``."""
        lib = await self._store.get_library(library)
        if lib is None:
            logger.warning("sync_sweep_unknown_library", library=library)
            return SweepReport(skipped=1)
        return await self._sweep_library(lib)

    async def _sweep_library(self, library: Library) -> SweepReport:
        coords = parse_github_url(library.source_url)
        if coords is None:
            logger.warning(
                "sync_sweep_bad_source_url",
                library=library.name,
                source_url=library.source_url,
            )
            return SweepReport(skipped=1)
        owner, repo = coords

        triggered = succeeded = failed = skipped = 0
        for version in await self._store.list_versions(library.id):
            if version.status != VersionStatus.ACTIVE:
                continue
            triggered += 1
            log = logger.bind(library=library.name, version=version.version)
            try:
                history = await self._sync.run(
                    version.id,
                    owner,
                    repo,
                    version.docs_path or self._default_docs_path,
                    version.version,
                )
            except ConcurrentRunConflictError:
                skipped += 1
                log.info("sync_sweep_version_busy")
                continue
            except LibDocsError as exc:
                failed += 1
                log.warning("sync_sweep_version_error", error=str(exc))
                continue
            except Exception as exc:
                failed += 1
                log.exception("sync_sweep_version_crashed", error=str(exc))
                continue

            if history.status == SyncStatus.SUCCESS:
                succeeded += 1
            else:
                failed += 1
                log.warning("sync_sweep_version_failed", error=history.error_message)

        return SweepReport(
            triggered=triggered, succeeded=succeeded, failed=failed, skipped=skipped
        )


def _add(a: SweepReport, b: SweepReport) -> SweepReport:
    return SweepReport(
        triggered=a.triggered + b.triggered,
        succeeded=a.succeeded + b.succeeded,
        failed=a.failed + b.failed,
        skipped=a.skipped + b.skipped,
    )
