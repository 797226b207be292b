"""Abstract base class for documentation fetch strategies.

Strategies are ordered by :meth:`IFetchStrategy.get_priority` (ascending)
inside :class:`~libdocs.services.ingestion.content_fetcher.ContentFetcher`.
The chain skips strategies whose :meth:`supports` is ``False`` and falls
through to the next one whenever :meth:`fetch` returns ``None``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from libdocs.models.fetch import FetchResult


# Concrete implementations:
#   ArchiveFetchStrategy       -- tag tarball download, eager (priority 1)
#   GitTreeFetchStrategy       -- recursive git tree listing, lazy (priority 2)
#   ContentsApiFetchStrategy   -- contents API directory walk, lazy (priority 3)
# Located in: libdocs/providers/fetch/
class IFetchStrategy(ABC):
    """Contract for acquiring raw documentation files from a repository."""

    @abstractmethod
    def supports(self, owner: str, repo: str, ref: str) -> bool:
        """Return ``True`` if this strategy can serve *ref*.

        Must be cheap and must not touch the network.
        """

    @abstractmethod
    async def fetch(self, owner: str, repo: str, path: str, ref: str) -> FetchResult | None:
        """List (and optionally preload) documentation files under *path*.

        Parameters
        ----------
        owner, repo:
            Repository coordinates.
        path:
            Repository-relative directory to restrict the listing to.  An
            empty string means the whole repository.
        ref:
            Tag, branch or commit to read.

        Returns
        -------
        FetchResult | None
            ``None`` when nothing usable was found.  Transport errors,
            non-2xx responses and malformed payloads are logged and also
            reported as ``None``; implementations never raise to the chain.
        """

    @abstractmethod
    def get_priority(self) -> int:
        """Return the ordering key; lower values are tried first."""

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Return a short identifier, e.g. ``"github_archive"``."""
