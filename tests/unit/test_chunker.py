"""Unit tests for the TextChunker: character limits, code fences and overlap."""

from __future__ import annotations

import pytest

from libdocs.services.ingestion.chunker import TextChunker

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _para(index: int, length: int) -> str:
    """Return a distinct paragraph of exactly *length* characters."""
    head = f"P{index:02d} "
    return head + "a" * (length - len(head))


def _code_block(lines: int, lang: str = "python") -> str:
    body = "\n".join(f"value_{i} = compute({i})" for i in range(lines))
    return f"```{lang}\n{body}\n```"


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestBasicChunking:
    def test_empty_text_yields_no_chunks(self) -> None:
        assert TextChunker().chunk("", "doc-1") == []
        assert TextChunker().chunk("  \n\n ", "doc-1") == []

    def test_short_text_is_single_chunk(self) -> None:
        chunks = TextChunker().chunk("# Title\n\nShort body.", "doc-1")
        assert len(chunks) == 1
        assert chunks[0].chunk_index == 0
        assert chunks[0].document_id == "doc-1"
        assert chunks[0].text == "# Title\n\nShort body."
        assert chunks[0].token_count == len(chunks[0].text) // 4

    def test_indices_contiguous_and_within_limit(self) -> None:
        text = "\n\n".join(_para(i, 180) for i in range(20))
        chunks = TextChunker(max_chars=500, overlap_chars=100).chunk(text, "doc-1")

        assert len(chunks) > 1
        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        assert all(len(c.text) <= 500 for c in chunks)
        assert len({c.id for c in chunks}) == len(chunks)

    def test_every_paragraph_survives(self) -> None:
        paragraphs = [_para(i, 180) for i in range(10)]
        chunks = TextChunker(max_chars=500, overlap_chars=100).chunk(
            "\n\n".join(paragraphs), "doc-1"
        )
        joined = "\n".join(c.text for c in chunks)
        for paragraph in paragraphs:
            assert paragraph in joined

    @pytest.mark.parametrize("max_chars,overlap", [(0, 0), (100, 100), (100, -1)])
    def test_invalid_configuration(self, max_chars: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(max_chars=max_chars, overlap_chars=overlap)


class TestCodeFences:
    def test_code_block_is_never_split(self) -> None:
        code = _code_block(10)
        text = "\n\n".join([_para(0, 300), code, _para(1, 300)])
        chunks = TextChunker(max_chars=500, overlap_chars=100).chunk(text, "doc-1")

        holders = [c for c in chunks if code in c.text]
        assert len(holders) == 1
        for chunk in chunks:
            if chunk is not holders[0]:
                assert "```" not in chunk.text

    def test_oversized_code_block_becomes_own_chunk(self) -> None:
        code = _code_block(60)
        assert len(code) > 500
        text = "\n\n".join([_para(0, 100), code, _para(1, 100)])
        chunks = TextChunker(max_chars=500, overlap_chars=100).chunk(text, "doc-1")

        assert [c.text for c in chunks] == [_para(0, 100), code, _para(1, 100)]

    def test_blank_lines_inside_fence_do_not_split_it(self) -> None:
        code = "```js\nconst a = 1;\n\n\nconst b = 2;\n```"
        chunks = TextChunker(max_chars=500, overlap_chars=100).chunk(f"Intro\n\n{code}", "d")
        assert len(chunks) == 1
        assert code in chunks[0].text

    def test_fence_nested_in_list_item_is_not_split(self) -> None:
        lines = []
        for i in range(30):
            lines.append(f"    x{i} = {i};")
            if i % 5 == 4:
                lines.append("")
        code = "    ```js\n" + "\n".join(lines) + "\n    ```"
        text = f"- item\n\n{code}\n\n- next item"

        chunks = TextChunker(max_chars=100, overlap_chars=20).chunk(text, "doc-1")

        holders = [c for c in chunks if "x0 = 0;" in c.text]
        assert len(holders) == 1
        assert "x29 = 29;" in holders[0].text
        assert holders[0].text == code

    def test_unterminated_fence_runs_to_end(self) -> None:
        text = _para(0, 300) + "\n\n```sh\nnpm install\n\nnpm test"
        chunks = TextChunker(max_chars=320, overlap_chars=50).chunk(text, "doc-1")
        assert chunks[-1].text == "```sh\nnpm install\n\nnpm test"


class TestOverlap:
    def test_trailing_paragraph_is_repeated(self) -> None:
        paragraphs = [_para(i, 150) for i in range(6)]
        chunks = TextChunker(max_chars=500, overlap_chars=200).chunk(
            "\n\n".join(paragraphs), "doc-1"
        )

        assert chunks[0].text.endswith(paragraphs[2])
        assert chunks[1].text.startswith(paragraphs[2])

    def test_no_overlap_when_disabled(self) -> None:
        paragraphs = [_para(i, 150) for i in range(6)]
        chunks = TextChunker(max_chars=500, overlap_chars=0).chunk(
            "\n\n".join(paragraphs), "doc-1"
        )
        assert chunks[1].text.startswith(paragraphs[3])

    def test_code_is_never_carried_as_overlap(self) -> None:
        code = _code_block(5)
        text = "\n\n".join([_para(0, 100), code, _para(1, 400)])
        chunks = TextChunker(max_chars=500, overlap_chars=200).chunk(text, "doc-1")
        assert sum(code in c.text for c in chunks) == 1


class TestLongParagraphs:
    def test_split_at_sentence_boundaries(self) -> None:
        sentences = [f"Sentence number {i} describes a hook." for i in range(40)]
        chunks = TextChunker(max_chars=200, overlap_chars=50).chunk(" ".join(sentences), "d")

        assert len(chunks) > 1
        for chunk in chunks:
            assert len(chunk.text) <= 200
            assert chunk.text.endswith(".")
            assert chunk.text.startswith("Sentence number")

    def test_sentence_longer_than_limit_is_hard_split(self) -> None:
        words = " ".join(f"word{i}" for i in range(200))
        chunks = TextChunker(max_chars=100, overlap_chars=0).chunk(words, "d")
        assert all(len(c.text) <= 100 for c in chunks)
        assert " ".join(c.text for c in chunks).split() == words.split()

    def test_abbreviations_do_not_end_sentences(self) -> None:
        sentences = TextChunker()._split_sentences("Use e.g. hooks. Then render! Done")
        assert sentences == ["Use e.g. hooks.", "Then render!", "Done"]
