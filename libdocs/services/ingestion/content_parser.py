"""Extension-based dispatch over :class:`IDocumentParser` implementations."""

from __future__ import annotations

import structlog

from libdocs.interfaces.document_parser import IDocumentParser
from libdocs.models.parsing import ParsedDocument
from libdocs.services.ingestion.parsers import (
    AsciiDocParser,
    HtmlParser,
    MarkdownParser,
    PlainTextParser,
)

logger = structlog.get_logger(logger_name=__name__)


def default_parsers() -> list[IDocumentParser]:
    """Return the built-in parsers in selection order."""
    return [MarkdownParser(), HtmlParser(), AsciiDocParser(), PlainTextParser()]


class ContentParser:
    """Selects the first parser whose ``supports`` matches a path.

    Unsupported files are filtered out by the caller via :meth:`supports`
    and never reach a parser.
    """

    def __init__(self, parsers: list[IDocumentParser] | None = None) -> None:
        self._parsers = parsers if parsers is not None else default_parsers()

    def parser_for(self, path: str) -> IDocumentParser | None:
        for parser in self._parsers:
            if parser.supports(path):
                return parser
        return None

    def supports(self, path: str) -> bool:
        return self.parser_for(path) is not None

    def parse(self, content: str | None, path: str) -> tuple[str, ParsedDocument]:
        """Parse *content* and return ``(doc_type, parsed_document)``.

        Raises
        ------
        ValueError
            If no parser supports *path*; callers check :meth:`supports` first.
        """
        parser = self.parser_for(path)
        if parser is None:
            raise ValueError(f"No parser supports {path!r}")
        parsed = parser.parse(content, path)
        logger.debug(
            "document_parsed",
            path=path,
            doc_type=parser.doc_type(),
            code_blocks=len(parsed.code_blocks),
        )
        return parser.doc_type(), parsed
