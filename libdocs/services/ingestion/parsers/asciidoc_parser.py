"""AsciiDoc parser (``.adoc``, ``.asciidoc``).

The document title is the level-0 heading (``= Title``).  Code blocks are
``[source,lang]`` listings delimited by ``----`` (or ``....``) lines.
"""

from __future__ import annotations

import re

from libdocs.models.parsing import CodeBlock, ParsedDocument
from libdocs.services.ingestion.parsers.base import ExtensionParser

_TITLE_RE = re.compile(r"^=[ \t]+(?P<title>\S.*?)[ \t]*$", re.MULTILINE)

_SOURCE_BLOCK_RE = re.compile(
    r"^\[source,[ \t]*(?P<lang>[\w+#.-]+)[^\]]*\][ \t]*\n"
    r"(?P<delim>-{4,}|\.{4,})[ \t]*\n"
    r"(?P<code>.*?)\n"
    r"(?P=delim)[ \t]*$",
    re.MULTILINE | re.DOTALL,
)


class AsciiDocParser(ExtensionParser):
    """Parses AsciiDoc documentation pages."""

    _EXTENSIONS = frozenset({".adoc", ".asciidoc"})
    _DOC_TYPE = "asciidoc"

    def _parse_text(self, content: str, path: str) -> ParsedDocument:
        match = _TITLE_RE.search(content)
        title = match.group("title") if match else self._stem(path)

        code_blocks = [
            CodeBlock(language=m.group("lang"), code=m.group("code"))
            for m in _SOURCE_BLOCK_RE.finditer(content)
        ]
        return ParsedDocument(
            title=title,
            content=content,
            code_blocks=code_blocks,
            metadata=self._metadata(path, len(code_blocks)),
        )
