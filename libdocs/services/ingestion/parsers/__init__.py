"""Format-specific document parsers, listed in selection order."""

from libdocs.services.ingestion.parsers.asciidoc_parser import AsciiDocParser
from libdocs.services.ingestion.parsers.html_parser import HtmlParser
from libdocs.services.ingestion.parsers.markdown_parser import MarkdownParser
from libdocs.services.ingestion.parsers.text_parser import PlainTextParser

__all__ = ["AsciiDocParser", "HtmlParser", "MarkdownParser", "PlainTextParser"]
