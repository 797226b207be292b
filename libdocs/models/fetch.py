"""Fetch strategy result models.

A :class:`FetchResult` lists the documentation files a strategy found for
``(owner, repo, path, ref)``.  Eager strategies (the tarball download)
fill ``contents`` while listing; lazy strategies (the GitHub tree and
contents APIs) leave it empty and the files are read one at a time by
:meth:`libdocs.services.ingestion.content_fetcher.ContentFetcher.read_file`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FetchedFile(BaseModel):
    """Descriptor for one file discovered by a fetch strategy."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="File name without directories.")
    path: str = Field(description="Repository-relative path, e.g. 'docs/hooks.md'.")
    size: int = Field(default=0, ge=0)
    kind: str = Field(default="file")
    download_url: str | None = Field(
        default=None,
        description="Direct download URL when the listing API provides one.",
    )


class FetchResult(BaseModel):
    """Ordered files found by one strategy, plus any preloaded content."""

    model_config = ConfigDict(frozen=True)

    files: list[FetchedFile] = Field(default_factory=list)
    contents: dict[str, str] = Field(
        default_factory=dict,
        description="Preloaded file text keyed by repository-relative path.",
    )
    strategy_used: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.files

    def has_content(self, path: str) -> bool:
        return path in self.contents

    def get_content(self, path: str) -> str | None:
        """Return preloaded text for *path*, or ``None`` for lazy files."""
        return self.contents.get(path)
