"""HTML parser (``.html``, ``.htm``) built on BeautifulSoup.

Title comes from ``<title>``, then the first ``<h1>``, then the file name
stem.  Code blocks are ``<pre><code>`` elements whose ``class`` (on the
``code`` or the ``pre``) carries a ``language-X`` or ``lang-X`` token.
The page body is flattened to markdown-like text: headings become ``#``
lines, list items ``-`` bullets and ``<pre>`` blocks fenced code.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from libdocs.models.parsing import CodeBlock, ParsedDocument
from libdocs.services.ingestion.parsers.base import ExtensionParser

_LANG_CLASS_RE = re.compile(r"^(?:language|lang)-(?P<lang>[\w+#.-]+)$")

_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "pre", "li", "blockquote", "tr", "dt", "dd"]
_DROP_TAGS = ["script", "style", "noscript", "template"]


class HtmlParser(ExtensionParser):
    """Parses static HTML documentation pages."""

    _EXTENSIONS = frozenset({".html", ".htm"})
    _DOC_TYPE = "html"

    def _parse_text(self, content: str, path: str) -> ParsedDocument:
        soup = BeautifulSoup(content, "html.parser")
        for tag in soup(_DROP_TAGS):
            tag.decompose()

        title = self._find_title(soup) or self._stem(path)

        code_blocks: list[CodeBlock] = []
        for pre in soup.find_all("pre"):
            code = pre.find("code")
            if code is None:
                continue
            language = _language_of(code) or _language_of(pre)
            if language:
                code_blocks.append(CodeBlock(language=language, code=code.get_text().rstrip("\n")))

        return ParsedDocument(
            title=title,
            content=self._to_text(soup),
            code_blocks=code_blocks,
            metadata=self._metadata(path, len(code_blocks)),
        )

    @staticmethod
    def _find_title(soup: BeautifulSoup) -> str:
        title_tag = soup.find("title")
        if title_tag is not None:
            title = title_tag.get_text(strip=True)
            if title:
                return title
        h1 = soup.find("h1")
        if h1 is not None:
            return h1.get_text(" ", strip=True)
        return ""

    @staticmethod
    def _to_text(soup: BeautifulSoup) -> str:
        root = soup.body or soup
        lines: list[str] = []
        for element in root.find_all(_BLOCK_TAGS):
            # Nested blocks are rendered by their outermost block ancestor.
            if element.find_parent(_BLOCK_TAGS) is not None:
                continue
            rendered = _render_block(element)
            if rendered:
                lines.append(rendered)

        if not lines:
            return root.get_text("\n", strip=True)
        return "\n\n".join(lines)


def _render_block(element: Tag) -> str:
    name = element.name
    if name == "pre":
        code = element.find("code")
        language = (_language_of(code) if code is not None else "") or _language_of(element)
        body = element.get_text().rstrip("\n")
        return f"```{language}\n{body}\n```"

    text = element.get_text(" ", strip=True)
    if not text:
        return ""
    if name in ("h1", "h2", "h3", "h4", "h5", "h6"):
        return f"{'#' * int(name[1])} {text}"
    if name == "li":
        return f"- {text}"
    if name == "blockquote":
        return f"> {text}"
    if name == "tr":
        cells = [c.get_text(" ", strip=True) for c in element.find_all(["th", "td"])]
        return " | ".join(cells)
    return text


def _language_of(tag: Tag) -> str:
    for token in tag.get("class") or []:
        match = _LANG_CLASS_RE.match(token)
        if match:
            return match.group("lang")
    return ""
