"""Path filtering shared by the GitHub fetch strategies."""

from __future__ import annotations

from pathlib import PurePosixPath

# Extensions a documentation sync will pick up.  Parsers exist for each.
DOC_EXTENSIONS = frozenset(
    {".md", ".markdown", ".mdx", ".adoc", ".asciidoc", ".html", ".htm", ".txt", ".rst"}
)


def normalize_prefix(path: str | None) -> str:
    """Return *path* without leading/trailing slashes ('' = whole repo)."""
    if not path:
        return ""
    return path.strip().strip("/")


def is_under(path: str, prefix: str) -> bool:
    """Return ``True`` if repository path *path* lies inside directory *prefix*."""
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


def is_doc_file(path: str) -> bool:
    """Return ``True`` if *path* has an allow-listed documentation extension."""
    return PurePosixPath(path).suffix.lower() in DOC_EXTENSIONS


def file_name(path: str) -> str:
    return PurePosixPath(path).name
