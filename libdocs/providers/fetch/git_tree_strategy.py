"""Recursive git tree fetch strategy.

Lists every blob of ``ref`` with one call to
``GET /repos/{owner}/{repo}/git/trees/{ref}?recursive=1`` and keeps the
documentation files under the requested path.  File contents are not
downloaded here; the chain reads them lazily from the raw content host.

GitHub truncates very large trees (``"truncated": true``).  A truncated
listing may silently miss files, so it is reported as no result and the
contents API strategy takes over.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from libdocs.interfaces.fetch_strategy import IFetchStrategy
from libdocs.models.fetch import FetchedFile, FetchResult
from libdocs.providers.fetch.paths import file_name, is_doc_file, is_under, normalize_prefix

logger = structlog.get_logger(logger_name=__name__)


class GitTreeFetchStrategy(IFetchStrategy):
    """Lazy strategy backed by the GitHub git trees API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_base_url: str = "https://api.github.com",
        headers: dict[str, str] | None = None,
        priority: int = 2,
    ) -> None:
        self._http = http_client
        self._api_base_url = api_base_url.rstrip("/")
        self._headers = headers or {}
        self._priority = priority

    def supports(self, owner: str, repo: str, ref: str) -> bool:
        return bool(ref)

    async def fetch(self, owner: str, repo: str, path: str, ref: str) -> FetchResult | None:
        url = f"{self._api_base_url}/repos/{owner}/{repo}/git/trees/{quote(ref, safe='')}"
        prefix = normalize_prefix(path)

        try:
            response = await self._http.get(
                url,
                params={"recursive": "1"},
                headers=self._headers,
                follow_redirects=True,
            )
            if response.status_code != 200:
                logger.warning("git_tree_rejected", url=url, status=response.status_code)
                return None
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("git_tree_request_failed", url=url, error=str(exc))
            return None

        if not isinstance(payload, dict):
            return None
        if payload.get("truncated"):
            logger.warning("git_tree_truncated", owner=owner, repo=repo, ref=ref)
            return None

        files: list[FetchedFile] = []
        tree = payload.get("tree")
        if not isinstance(tree, list):
            logger.warning("git_tree_malformed", owner=owner, repo=repo, ref=ref)
            return None

        for node in tree:
            if not isinstance(node, dict) or node.get("type") != "blob":
                continue
            node_path = node.get("path")
            if not isinstance(node_path, str):
                continue
            if not is_under(node_path, prefix) or not is_doc_file(node_path):
                continue
            files.append(
                FetchedFile(
                    name=file_name(node_path),
                    path=node_path,
                    size=int(node.get("size") or 0),
                )
            )

        if not files:
            logger.info("git_tree_no_matching_files", owner=owner, repo=repo, path=prefix)
            return None

        files.sort(key=lambda f: f.path)
        logger.info("git_tree_fetch_complete", owner=owner, repo=repo, ref=ref, files=len(files))
        return FetchResult(files=files, strategy_used=self.get_strategy_name())

    def get_priority(self) -> int:
        return self._priority

    def get_strategy_name(self) -> str:
        return "github_git_tree"
