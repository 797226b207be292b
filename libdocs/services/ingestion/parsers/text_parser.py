"""Plain text and reStructuredText parser (``.txt``, ``.rst``).

reStructuredText titles are the first line underlined (optionally also
overlined) with a run of punctuation at least as long as the text.  Plain
text files use the file name stem.  ``.. code-block:: lang`` directives
in ``.rst`` files become code blocks.
"""

from __future__ import annotations

import re
import textwrap
from pathlib import PurePosixPath

from libdocs.models.parsing import CodeBlock, ParsedDocument
from libdocs.services.ingestion.parsers.base import ExtensionParser

_ADORNMENT_RE = re.compile(r"^([=\-~^#*+`:'\"])\1+[ \t]*$")

_RST_CODE_RE = re.compile(
    r"^\.\.[ \t]+(?:code-block|code|sourcecode)::[ \t]*(?P<lang>\S+)[ \t]*\n"
    r"(?:[ \t]+:[^\n]*\n)*"
    r"[ \t]*\n"
    r"(?P<code>(?:[ \t]+[^\n]*\n|[ \t]*\n)+)",
    re.MULTILINE,
)


class PlainTextParser(ExtensionParser):
    """Parses ``.txt`` and ``.rst`` files."""

    _EXTENSIONS = frozenset({".txt", ".rst"})
    _DOC_TYPE = "text"

    def _parse_text(self, content: str, path: str) -> ParsedDocument:
        is_rst = PurePosixPath(path).suffix.lower() == ".rst"

        title = (_rst_title(content) if is_rst else "") or self._stem(path)
        code_blocks: list[CodeBlock] = []
        if is_rst:
            code_blocks = [
                CodeBlock(
                    language=m.group("lang"),
                    code=textwrap.dedent(m.group("code")).strip("\n"),
                )
                for m in _RST_CODE_RE.finditer(content)
            ]

        return ParsedDocument(
            title=title,
            content=content,
            code_blocks=code_blocks,
            metadata=self._metadata(
                path, len(code_blocks), markup="restructuredtext" if is_rst else "plain"
            ),
        )


def _rst_title(content: str) -> str:
    lines = content.splitlines()
    for index in range(len(lines) - 1):
        text = lines[index].strip()
        if not text or _ADORNMENT_RE.match(text):
            continue
        underline = lines[index + 1].strip()
        if _ADORNMENT_RE.match(underline) and len(underline) >= len(text):
            return text
    return ""
