"""Shared plumbing for extension-selected parsers."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any

from libdocs.interfaces.document_parser import IDocumentParser
from libdocs.models.parsing import ParsedDocument


class ExtensionParser(IDocumentParser):
    """Base for parsers selected by file extension.

    Subclasses set ``_EXTENSIONS`` and ``_DOC_TYPE`` and implement
    :meth:`_parse_text`, which only ever sees non-blank input.
    """

    _EXTENSIONS: frozenset[str] = frozenset()
    _DOC_TYPE = "text"

    def supports(self, path: str) -> bool:
        return PurePosixPath(path).suffix.lower() in self._EXTENSIONS

    def doc_type(self) -> str:
        return self._DOC_TYPE

    def parse(self, content: str | None, path: str) -> ParsedDocument:
        if content is None or not content.strip():
            return ParsedDocument.empty(self._metadata(path, 0))
        return self._parse_text(content, path)

    def _parse_text(self, content: str, path: str) -> ParsedDocument:
        raise NotImplementedError

    def _metadata(self, path: str, code_block_count: int, **extra: Any) -> dict[str, Any]:
        return {
            "path": path,
            "format": self.doc_type(),
            "code_block_count": code_block_count,
            **extra,
        }

    @staticmethod
    def _stem(path: str) -> str:
        return PurePosixPath(path).stem
