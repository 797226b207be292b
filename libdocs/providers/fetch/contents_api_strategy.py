"""Contents API fetch strategy, the fallback of last resort.

Walks ``GET /repos/{owner}/{repo}/contents/{path}?ref={ref}`` directory by
directory.  Each file entry carries a ``download_url`` which the chain
uses for the lazy content read.  It costs one request per directory but
works for any ref and any repository size.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from libdocs.interfaces.fetch_strategy import IFetchStrategy
from libdocs.models.fetch import FetchedFile, FetchResult
from libdocs.providers.fetch.paths import file_name, is_doc_file, normalize_prefix

logger = structlog.get_logger(logger_name=__name__)

_MAX_DEPTH = 10


class ContentsApiFetchStrategy(IFetchStrategy):
    """Lazy strategy backed by the GitHub contents API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_base_url: str = "https://api.github.com",
        headers: dict[str, str] | None = None,
        priority: int = 3,
    ) -> None:
        self._http = http_client
        self._api_base_url = api_base_url.rstrip("/")
        self._headers = headers or {}
        self._priority = priority

    def supports(self, owner: str, repo: str, ref: str) -> bool:
        return True

    async def fetch(self, owner: str, repo: str, path: str, ref: str) -> FetchResult | None:
        files: list[FetchedFile] = []
        ok = await self._walk(owner, repo, normalize_prefix(path), ref, files, depth=0)
        if not ok or not files:
            logger.info("contents_api_no_files", owner=owner, repo=repo, path=path, ref=ref)
            return None

        files.sort(key=lambda f: f.path)
        logger.info(
            "contents_api_fetch_complete", owner=owner, repo=repo, ref=ref, files=len(files)
        )
        return FetchResult(files=files, strategy_used=self.get_strategy_name())

    def get_priority(self) -> int:
        return self._priority

    def get_strategy_name(self) -> str:
        return "github_contents_api"

    # -- Helpers ---------------------------------------------------------------

    async def _walk(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str,
        files: list[FetchedFile],
        depth: int,
    ) -> bool:
        """Collect doc files under *path* into *files*.

        Returns ``False`` only when the top-level listing failed; failures
        in subdirectories are logged and the walk continues.
        """
        entries = await self._list(owner, repo, path, ref)
        if entries is None:
            return depth > 0

        for entry in entries:
            entry_type = entry.get("type")
            entry_path = entry.get("path")
            if not isinstance(entry_path, str):
                continue
            if entry_type == "dir":
                if depth + 1 > _MAX_DEPTH:
                    logger.debug("contents_api_depth_limit", path=entry_path)
                    continue
                await self._walk(owner, repo, entry_path, ref, files, depth + 1)
            elif entry_type == "file" and is_doc_file(entry_path):
                files.append(
                    FetchedFile(
                        name=entry.get("name") or file_name(entry_path),
                        path=entry_path,
                        size=int(entry.get("size") or 0),
                        download_url=entry.get("download_url"),
                    )
                )
        return True

    async def _list(
        self, owner: str, repo: str, path: str, ref: str
    ) -> list[dict[str, Any]] | None:
        url = f"{self._api_base_url}/repos/{owner}/{repo}/contents/{quote(path)}"
        try:
            response = await self._http.get(
                url,
                params={"ref": ref},
                headers=self._headers,
                follow_redirects=True,
            )
            if response.status_code != 200:
                logger.warning("contents_api_rejected", url=url, status=response.status_code)
                return None
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("contents_api_request_failed", url=url, error=str(exc))
            return None

        # A path pointing at a single file returns an object, not a list.
        if isinstance(payload, dict):
            return [payload]
        if isinstance(payload, list):
            return [e for e in payload if isinstance(e, dict)]
        return None
