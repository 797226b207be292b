"""Ordered fallback chain over :class:`IFetchStrategy` implementations.

The chain sorts strategies by priority, skips the ones whose cheap
``supports`` check rejects the ref, and returns the first non-empty
:class:`FetchResult`.  A strategy returning ``None`` passes control to the
next supporting strategy; once one succeeds no further strategy runs.  Only
total exhaustion surfaces as :class:`FetchError`.

Lazy strategies list files without content.  :meth:`ContentFetcher.read_file`
hides the difference from the sync orchestrator: preloaded text first,
then the listing's ``download_url``, then the raw content host.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from libdocs.interfaces.fetch_strategy import IFetchStrategy
from libdocs.models.fetch import FetchedFile, FetchResult
from libdocs.utils.errors import FetchError

logger = structlog.get_logger(logger_name=__name__)


class ContentFetcher:
    """Fetch documentation files through a priority-ordered strategy chain.

    Parameters
    ----------
    strategies:
        Strategies in any order; sorted by ``get_priority()`` here.
    http_client:
        Shared client used for lazy file reads.
    raw_base_url:
        Raw content host, ``https://raw.githubusercontent.com`` in production.
    headers:
        Extra headers (e.g. the GitHub token) sent with lazy reads.
    """

    def __init__(
        self,
        strategies: list[IFetchStrategy],
        http_client: httpx.AsyncClient,
        raw_base_url: str = "https://raw.githubusercontent.com",
        headers: dict[str, str] | None = None,
    ) -> None:
        self._strategies = sorted(strategies, key=lambda s: s.get_priority())
        self._http = http_client
        self._raw_base_url = raw_base_url.rstrip("/")
        self._headers = headers or {}

    @property
    def strategies(self) -> list[IFetchStrategy]:
        return list(self._strategies)

    async def fetch(self, owner: str, repo: str, path: str, ref: str) -> FetchResult:
        """Return the first non-empty result of the strategy chain.

        Raises
        ------
        FetchError
            If no supporting strategy produced any files.
        """
        attempted: list[str] = []
        for strategy in self._strategies:
            name = strategy.get_strategy_name()
            if not strategy.supports(owner, repo, ref):
                logger.debug("fetch_strategy_unsupported", strategy=name, ref=ref)
                continue

            attempted.append(name)
            try:
                result = await strategy.fetch(owner, repo, path, ref)
            except Exception as exc:
                # A strategy bug or unexpected payload counts as "no result".
                logger.warning(
                    "fetch_strategy_crashed",
                    strategy=name,
                    owner=owner,
                    repo=repo,
                    ref=ref,
                    error=str(exc),
                    exc_info=True,
                )
                continue
            if result is not None and not result.is_empty:
                if not result.strategy_used:
                    result = result.model_copy(update={"strategy_used": name})
                logger.info(
                    "fetch_strategy_succeeded",
                    strategy=name,
                    owner=owner,
                    repo=repo,
                    ref=ref,
                    files=len(result.files),
                )
                return result

            logger.info("fetch_strategy_empty", strategy=name, owner=owner, repo=repo, ref=ref)

        raise FetchError(
            message=(
                f"No fetch strategy returned files for {owner}/{repo}@{ref} path='{path}' "
                f"(tried: {', '.join(attempted) or 'none'})"
            ),
            provider_name="github",
        )

    async def read_file(
        self,
        owner: str,
        repo: str,
        ref: str,
        result: FetchResult,
        file: FetchedFile,
    ) -> str:
        """Return the text of *file* from *result*, downloading it if needed.

        Raises
        ------
        FetchError
            If the download fails, returns non-2xx, or is not UTF-8 text.
        """
        preloaded = result.get_content(file.path)
        if preloaded is not None:
            return preloaded

        url = file.download_url or self.raw_url(owner, repo, ref, file.path)
        try:
            response = await self._http.get(url, headers=self._headers, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(
                message=f"Failed to download {file.path}: {exc}",
                provider_name="github_raw",
            ) from exc

        try:
            return response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FetchError(
                message=f"{file.path} is not valid UTF-8 text",
                provider_name="github_raw",
            ) from exc

    def raw_url(self, owner: str, repo: str, ref: str, path: str) -> str:
        return f"{self._raw_base_url}/{owner}/{repo}/{quote(ref, safe='')}/{quote(path)}"
