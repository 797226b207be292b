"""Character-limited chunking with fenced-code preservation.

Splits normalised document content into :class:`DocumentChunk` objects of
at most ``max_chars`` characters (default 1000) with up to
``overlap_chars`` characters (default 200) of trailing prose repeated at
the start of the next chunk.

Segmentation rules:

1. **Code fences are atomic** -- a fenced block (```` ``` ```` or ``~~~``)
   is never split.  A block longer than the limit becomes one oversized
   chunk of its own.
2. **Paragraph-preserving** -- prose is split on blank lines and paragraphs
   are packed greedily.
3. **Sentence fallback** -- a paragraph longer than the limit is split at
   sentence boundaries (abbreviation-aware), and a sentence longer than
   the limit is cut at the last whitespace before the limit.

Overlap only ever carries prose and is dropped when carrying it would push
the next chunk over the limit.  Chunk indices are zero-based and
contiguous.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

import structlog

from libdocs.models.document import DocumentChunk

logger = structlog.get_logger(logger_name=__name__)

# Periods after these words do not end a sentence ("e.g. foo", "vs. bar").
_ABBREVIATIONS = frozenset(
    {
        "e.g",
        "i.e",
        "etc",
        "vs",
        "approx",
        "cf",
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "No",
        "Fig",
        "Vol",
        "Inc",
        "Ltd",
    }
)

_ABBREVIATION_RE = re.compile(
    r"\b(" + "|".join(re.escape(a) for a in sorted(_ABBREVIATIONS)) + r")\."
)
_FENCE_OPEN_RE = re.compile(r"^[ \t]*(?P<fence>`{3,}|~{3,})")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n")

_PARAGRAPH_JOINER = "\n\n"
_SENTENCE_JOINER = " "


@dataclass(frozen=True)
class _Segment:
    text: str
    is_code: bool = False


class TextChunker:
    """Splits document content into bounded, ordered chunks.

    Parameters
    ----------
    max_chars:
        Maximum characters per chunk, except for oversized code blocks.
    overlap_chars:
        Maximum characters of trailing prose repeated in the next chunk.
    """

    def __init__(self, max_chars: int = 1000, overlap_chars: int = 200) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        if overlap_chars < 0 or overlap_chars >= max_chars:
            raise ValueError("overlap_chars must be in [0, max_chars)")
        self._max_chars = max_chars
        self._overlap = overlap_chars

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, document_id: str) -> list[DocumentChunk]:
        """Split *text* into :class:`DocumentChunk` objects for *document_id*.

        Empty or whitespace-only input returns an empty list.
        """
        if not text or not text.strip():
            return []

        segments = self._split_segments(text)
        raw_chunks = [c for c in self._accumulate_chunks(segments) if c.strip()]

        chunks = [
            DocumentChunk(
                id=str(uuid.uuid4()),
                document_id=document_id,
                chunk_index=index,
                text=chunk_text,
                token_count=len(chunk_text) // 4,
            )
            for index, chunk_text in enumerate(raw_chunks)
        ]

        logger.debug(
            "chunking_complete",
            document_id=document_id,
            num_chunks=len(chunks),
            max_chars=max((len(c.text) for c in chunks), default=0),
        )
        return chunks

    # ------------------------------------------------------------------
    # Segmentation
    # ------------------------------------------------------------------

    @staticmethod
    def _split_segments(text: str) -> list[_Segment]:
        """Split *text* into prose paragraphs and whole fenced code blocks."""
        segments: list[_Segment] = []
        prose: list[str] = []
        fence: str | None = None
        fence_lines: list[str] = []

        def flush_prose() -> None:
            for paragraph in _PARAGRAPH_SPLIT_RE.split("\n".join(prose)):
                paragraph = paragraph.strip("\n").rstrip()
                if paragraph.strip():
                    segments.append(_Segment(paragraph))
            prose.clear()

        for line in text.splitlines():
            if fence is None:
                match = _FENCE_OPEN_RE.match(line)
                if match:
                    flush_prose()
                    fence = match.group("fence")
                    fence_lines = [line]
                else:
                    prose.append(line)
                continue

            fence_lines.append(line)
            closing = line.strip()
            if closing and set(closing) == {fence[0]} and len(closing) >= len(fence):
                segments.append(_Segment("\n".join(fence_lines), is_code=True))
                fence = None
                fence_lines = []

        if fence is not None:
            # Unterminated fence: the rest of the document is code.
            segments.append(_Segment("\n".join(fence_lines), is_code=True))
        flush_prose()
        return segments

    def _split_sentences(self, text: str) -> list[str]:
        """Split *text* at ``.``/``!``/``?`` boundaries, skipping abbreviations."""
        # Mask abbreviation periods with a same-length placeholder so match
        # offsets stay aligned with the original text.
        masked = _ABBREVIATION_RE.sub(lambda m: m.group(1) + "\x00", text)

        sentences: list[str] = []
        last = 0
        for match in re.finditer(r"[.!?](?:\s|$)", masked):
            sentence = text[last:match.end()].strip()
            if sentence:
                sentences.append(sentence)
            last = match.end()

        remainder = text[last:].strip()
        if remainder:
            sentences.append(remainder)
        return sentences if sentences else [text]

    def _hard_split(self, text: str) -> list[str]:
        """Cut *text* into pieces of at most *max_chars*, preferring whitespace."""
        pieces: list[str] = []
        while len(text) > self._max_chars:
            cut = text.rfind(" ", 0, self._max_chars + 1)
            if cut <= self._max_chars // 2:
                cut = self._max_chars
            pieces.append(text[:cut].rstrip())
            text = text[cut:].lstrip()
        if text:
            pieces.append(text)
        return pieces

    # ------------------------------------------------------------------
    # Chunk accumulation
    # ------------------------------------------------------------------

    def _accumulate_chunks(self, segments: list[_Segment]) -> list[str]:
        """Greedily pack segments into chunks, carrying prose overlap."""
        chunks: list[str] = []
        current: list[_Segment] = []

        for segment in segments:
            if len(segment.text) > self._max_chars:
                if current:
                    chunks.append(_join(current, _PARAGRAPH_JOINER))
                    current = []
                if segment.is_code:
                    chunks.append(segment.text)
                else:
                    chunks.extend(self._chunk_long_paragraph(segment.text))
                continue

            if current and _joined_len([*current, segment], _PARAGRAPH_JOINER) > self._max_chars:
                chunks.append(_join(current, _PARAGRAPH_JOINER))
                current = self._build_overlap(current, segment, _PARAGRAPH_JOINER)
            current.append(segment)

        if current:
            chunks.append(_join(current, _PARAGRAPH_JOINER))
        return chunks

    def _chunk_long_paragraph(self, paragraph: str) -> list[str]:
        """Pack the sentences of an oversized paragraph into chunks."""
        pieces: list[_Segment] = []
        for sentence in self._split_sentences(paragraph):
            pieces.extend(_Segment(p) for p in self._hard_split(sentence))

        chunks: list[str] = []
        current: list[_Segment] = []
        for piece in pieces:
            if current and _joined_len([*current, piece], _SENTENCE_JOINER) > self._max_chars:
                chunks.append(_join(current, _SENTENCE_JOINER))
                current = self._build_overlap(current, piece, _SENTENCE_JOINER)
            current.append(piece)
        if current:
            chunks.append(_join(current, _SENTENCE_JOINER))
        return chunks

    def _build_overlap(
        self, parts: list[_Segment], upcoming: _Segment, joiner: str
    ) -> list[_Segment]:
        """Return trailing prose parts (<= *overlap* chars) to seed the next chunk."""
        tail: list[_Segment] = []
        for part in reversed(parts):
            if part.is_code:
                break
            candidate = [part, *tail]
            if _joined_len(candidate, joiner) > self._overlap:
                break
            tail = candidate
        if tail and _joined_len([*tail, upcoming], joiner) > self._max_chars:
            return []
        return tail


def _join(parts: list[_Segment], joiner: str) -> str:
    return joiner.join(p.text for p in parts)


def _joined_len(parts: list[_Segment], joiner: str) -> int:
    return sum(len(p.text) for p in parts) + len(joiner) * (len(parts) - 1)
