"""Tag tarball fetch strategy.

Downloads ``{owner}/{repo}/archive/refs/tags/{tag}.tar.gz`` with a single
GET and reads it as a stream: the compressed payload is spooled to a
temporary file and ``tarfile`` walks the entries in pipe mode, so only one
entry's bytes are held in memory at a time.  GitHub prefixes every entry
with a ``<repo>-<tag>/`` root directory which is stripped before path
filtering.

Only tag-like refs (``v1.2.3``, ``18.2.0``, ``2.0.0-rc.1``) are supported;
branches and commits fall through to the API-based strategies.
"""

from __future__ import annotations

import re
import tarfile
import tempfile
import zlib
from typing import IO

import httpx
import structlog

from libdocs.interfaces.fetch_strategy import IFetchStrategy
from libdocs.models.fetch import FetchedFile, FetchResult
from libdocs.providers.fetch.paths import file_name, is_doc_file, is_under, normalize_prefix

logger = structlog.get_logger(logger_name=__name__)

_TAG_PATTERN = re.compile(r"^v?\d+(\.\d+)*.*$")
_DOWNLOAD_CHUNK = 64 * 1024
# Compressed payload stays in memory up to this size before spilling to disk.
_SPOOL_MAX_BYTES = 8 * 1024 * 1024


class ArchiveFetchStrategy(IFetchStrategy):
    """Eager strategy that reads documentation straight out of a tag tarball.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``; injected for testability.
    base_url:
        Archive host, ``https://github.com`` in production.
    tag_prefix:
        Prefix added to bare version refs, so ``18.2.0`` downloads tag
        ``v18.2.0``.  Refs already carrying the prefix are used unchanged.
    max_file_bytes:
        Entries larger than this are skipped.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://github.com",
        tag_prefix: str = "v",
        max_file_bytes: int = 2_000_000,
        priority: int = 1,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._tag_prefix = tag_prefix
        self._max_file_bytes = max_file_bytes
        self._priority = priority

    # -- IFetchStrategy implementation ---------------------------------------

    def supports(self, owner: str, repo: str, ref: str) -> bool:
        return bool(ref) and bool(_TAG_PATTERN.match(ref))

    async def fetch(self, owner: str, repo: str, path: str, ref: str) -> FetchResult | None:
        url = self.archive_url(owner, repo, ref)
        prefix = normalize_prefix(path)

        with tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES) as spool:
            try:
                async with self._http.stream("GET", url, follow_redirects=True) as response:
                    if response.status_code != 200:
                        logger.warning(
                            "archive_download_rejected",
                            url=url,
                            status=response.status_code,
                        )
                        return None
                    async for block in response.aiter_bytes(_DOWNLOAD_CHUNK):
                        spool.write(block)
            except httpx.HTTPError as exc:
                logger.warning("archive_download_failed", url=url, error=str(exc))
                return None

            if spool.tell() == 0:
                logger.warning("archive_empty", url=url)
                return None
            spool.seek(0)

            try:
                files, contents = self._extract(spool, prefix)
            except (tarfile.TarError, EOFError, OSError, zlib.error) as exc:
                logger.warning("archive_unreadable", url=url, error=str(exc))
                return None

        if not files:
            logger.info("archive_no_matching_files", url=url, path=prefix)
            return None

        logger.info(
            "archive_fetch_complete",
            owner=owner,
            repo=repo,
            ref=ref,
            files=len(files),
        )
        return FetchResult(files=files, contents=contents, strategy_used=self.get_strategy_name())

    def get_priority(self) -> int:
        return self._priority

    def get_strategy_name(self) -> str:
        return "github_archive"

    # -- Helpers ---------------------------------------------------------------

    def archive_url(self, owner: str, repo: str, ref: str) -> str:
        return f"{self._base_url}/{owner}/{repo}/archive/refs/tags/{self.tag_for(ref)}.tar.gz"

    def tag_for(self, ref: str) -> str:
        """Return the tag name to download for *ref*."""
        if not self._tag_prefix or ref.startswith(self._tag_prefix):
            return ref
        return f"{self._tag_prefix}{ref}"

    def _extract(
        self, fileobj: IO[bytes], prefix: str
    ) -> tuple[list[FetchedFile], dict[str, str]]:
        """Walk the gzip tar stream entry by entry, keeping matching docs."""
        files: list[FetchedFile] = []
        contents: dict[str, str] = {}

        with tarfile.open(fileobj=fileobj, mode="r|gz") as archive:
            for member in archive:
                if not member.isfile():
                    continue
                relative = _strip_root(member.name)
                if not relative or not is_under(relative, prefix) or not is_doc_file(relative):
                    continue
                if member.size > self._max_file_bytes:
                    logger.debug("archive_entry_too_large", path=relative, size=member.size)
                    continue

                handle = archive.extractfile(member)
                if handle is None:
                    continue
                raw = handle.read()
                try:
                    text = raw.decode("utf-8")
                except UnicodeDecodeError:
                    logger.debug("archive_entry_not_utf8", path=relative)
                    continue

                files.append(
                    FetchedFile(
                        name=file_name(relative),
                        path=relative,
                        size=member.size,
                    )
                )
                contents[relative] = text

        return files, contents


def _strip_root(name: str) -> str:
    """Drop the ``<repo>-<tag>/`` directory GitHub puts in front of every entry."""
    if name.startswith("./"):
        name = name[2:]
    parts = name.split("/", 1)
    return parts[1] if len(parts) == 2 else ""
