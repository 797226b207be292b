"""Abstract base class for format-specific document parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from libdocs.models.parsing import ParsedDocument


# Concrete implementations (in selection order):
#   MarkdownParser, HtmlParser, AsciiDocParser, PlainTextParser
# Located in: libdocs/services/ingestion/parsers/
class IDocumentParser(ABC):
    """Contract for turning raw file text into a :class:`ParsedDocument`."""

    @abstractmethod
    def supports(self, path: str) -> bool:
        """Return ``True`` if *path*'s extension (case-insensitive) is handled."""

    @abstractmethod
    def parse(self, content: str | None, path: str) -> ParsedDocument:
        """Parse *content* read from *path*.

        Never raises.  ``None`` or empty content yields a document with an
        empty title, empty content and no code blocks.
        """

    @abstractmethod
    def doc_type(self) -> str:
        """Return the stored document format, e.g. ``"markdown"``."""
