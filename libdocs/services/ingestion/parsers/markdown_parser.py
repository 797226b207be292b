"""Markdown parser (``.md``, ``.markdown``, ``.mdx``).

Title resolution order: the first level-1 heading outside fenced code
(ATX ``# Title`` or setext ``Title`` underlined with ``===``), then the
file name without extension.  A front-matter ``title`` is kept in metadata
only.

Only fenced blocks that name a language (```` ```js ````) become code
blocks.  Fences may be indented, as inside list items; the opening fence's
indent is removed from each code line.  The body is kept as written,
minus any front matter, which is moved into ``metadata["front_matter"]``.
"""

from __future__ import annotations

import re
from typing import Any

import structlog
import yaml

from libdocs.models.parsing import CodeBlock, ParsedDocument
from libdocs.services.ingestion.parsers.base import ExtensionParser

logger = structlog.get_logger(logger_name=__name__)

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\n(?P<body>.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)

_FENCE_RE = re.compile(
    r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[^\s`{]+)?[^\n]*\n"
    r"(?P<code>.*?)"
    r"^[ \t]*(?P=fence)[ \t]*$",
    re.MULTILINE | re.DOTALL,
)

_ATX_H1_RE = re.compile(r"^#[ \t]+(?P<title>.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
_SETEXT_H1_RE = re.compile(r"^(?P<title>[^\s\n][^\n]*)\n=+[ \t]*$", re.MULTILINE)

_SCALAR_TYPES = (str, int, float, bool)


class MarkdownParser(ExtensionParser):
    """Parses Markdown and MDX documentation pages."""

    _EXTENSIONS = frozenset({".md", ".markdown", ".mdx"})
    _DOC_TYPE = "markdown"

    def _parse_text(self, content: str, path: str) -> ParsedDocument:
        front_matter, body = self._split_front_matter(content, path)

        code_blocks = [
            CodeBlock(
                language=m.group("lang"),
                code=_dedent(m.group("code"), len(m.group("indent"))).rstrip("\n"),
            )
            for m in _FENCE_RE.finditer(body)
            if m.group("lang")
        ]

        title = self._find_h1(body) or self._stem(path)

        extra: dict[str, Any] = {}
        if front_matter:
            extra["front_matter"] = front_matter

        return ParsedDocument(
            title=title,
            content=body,
            code_blocks=code_blocks,
            metadata=self._metadata(path, len(code_blocks), **extra),
        )

    @staticmethod
    def _find_h1(body: str) -> str:
        # Headings inside code fences (shell comments, etc.) don't count.
        prose = _FENCE_RE.sub("", body)
        candidates = [m for m in (_ATX_H1_RE.search(prose), _SETEXT_H1_RE.search(prose)) if m]
        if not candidates:
            return ""
        first = min(candidates, key=lambda m: m.start())
        return _clean_inline(first.group("title"))

    @staticmethod
    def _split_front_matter(content: str, path: str) -> tuple[dict[str, Any], str]:
        match = _FRONT_MATTER_RE.match(content)
        if not match:
            return {}, content
        try:
            loaded = yaml.safe_load(match.group("body"))
        except yaml.YAMLError as exc:
            logger.debug("markdown_front_matter_invalid", path=path, error=str(exc))
            return {}, content
        if not isinstance(loaded, dict):
            return {}, content

        # Metadata is stored as JSON; keep plain scalars and string lists.
        front_matter = {
            str(k): v
            for k, v in loaded.items()
            if isinstance(v, _SCALAR_TYPES)
            or (isinstance(v, list) and all(isinstance(i, str) for i in v))
        }
        return front_matter, content[match.end():]


def _dedent(code: str, width: int) -> str:
    """Remove up to *width* leading blanks (the fence's own indent) from each line."""
    if not width:
        return code
    return "".join(
        line[min(width, len(line) - len(line.lstrip(" \t"))) :]
        for line in code.splitlines(keepends=True)
    )


def _clean_inline(text: str) -> str:
    """Strip inline code ticks and bold markers from a heading."""
    return text.replace("`", "").replace("**", "").strip()
