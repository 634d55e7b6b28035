"""
Tests for DocumentChunker

Covers paragraph packing, the sentence and word fallbacks, the size
ceiling, and order preservation.
"""

import re

import pytest

from pocketllm.summarization.chunker import DocumentChunk, DocumentChunker


def regex_sentences(text):
    """Deterministic splitter so tests don't depend on installed NLTK data."""
    return re.split(r'(?<=[.!?])\s+', text)


@pytest.fixture
def chunker():
    return DocumentChunker(max_chunk_size=2000, sentence_splitter=regex_sentences)


def squash(text):
    return "".join(text.split())


class TestParagraphPacking:
    """Paragraph-level greedy packing."""

    def test_empty_input_yields_no_chunks(self, chunker):
        assert chunker.chunk("") == []
        assert chunker.chunk("  \n\n   \n") == []

    def test_three_small_paragraphs_fit_one_chunk(self, chunker):
        paragraphs = ["a" * 500, "b" * 500, "c" * 500]
        chunks = chunker.chunk("\n\n".join(paragraphs), 2000)

        assert len(chunks) == 1
        assert chunks[0].text == "\n".join(paragraphs)
        assert len(chunks[0]) == 1502

    def test_paragraphs_close_chunk_when_full(self, chunker):
        paragraphs = [c * 800 for c in "abc"]
        chunks = chunker.chunk("\n".join(paragraphs), 2000)

        assert [c.text for c in chunks] == ["a" * 800 + "\n" + "b" * 800, "c" * 800]

    def test_blank_lines_dropped_and_lines_kept_verbatim(self, chunker):
        chunks = chunker.chunk("  first  \n\n\n\tsecond\n   \n")
        assert chunks == [DocumentChunk(index=0, text="  first  \n\tsecond")]

    def test_indentation_survives_round_trip(self, chunker):
        text = "def f():\n    return 1\n\n  - item"
        joined = "\n".join(c.text for c in chunker.chunk(text))
        assert joined == "def f():\n    return 1\n  - item"

    def test_chunk_indexes_are_sequential(self, chunker):
        chunks = chunker.chunk("\n".join(c * 900 for c in "abcde"), 1000)
        assert [c.index for c in chunks] == list(range(5))


class TestFallbacks:
    """Sentence and word fallbacks for oversized paragraphs."""

    def test_unpunctuated_paragraph_splits_by_words(self, chunker):
        """A 5000-char paragraph without sentence breaks yields 3 chunks."""
        text = " ".join(["word"] * 1000)
        chunks = chunker.chunk(text, 2000)

        assert len(chunks) == 3
        assert all(len(c) <= 2000 for c in chunks)
        assert [len(c.text.split()) for c in chunks] == [400, 400, 200]

    def test_long_paragraph_splits_on_sentences(self, chunker):
        sentence = "This sentence is exactly forty-six characters."
        text = " ".join([sentence] * 10)
        chunks = chunker.chunk(text, 100)

        assert all(len(c) <= 100 for c in chunks)
        assert all(c.text.endswith(".") for c in chunks)
        assert squash("".join(c.text for c in chunks)) == squash(text)

    def test_oversized_word_emitted_alone(self, chunker):
        giant = "x" * 150
        chunks = chunker.chunk(f"short words {giant} after", 50)

        assert [c.text for c in chunks] == ["short words", giant, "after"]

    def test_uses_default_ceiling(self):
        chunker = DocumentChunker(max_chunk_size=10, sentence_splitter=regex_sentences)
        chunks = chunker.chunk("aaaa bbbb cccc")
        assert [c.text for c in chunks] == ["aaaa bbbb", "cccc"]

    def test_invalid_ceiling_rejected(self, chunker):
        with pytest.raises(ValueError):
            chunker.chunk("text", -5)

    def test_zero_ceiling_rejected(self, chunker):
        with pytest.raises(ValueError):
            chunker.chunk("text", 0)


class TestGuarantees:
    """Ordering, bounds and round-trip."""

    @pytest.fixture
    def document(self):
        paragraphs = []
        for i in range(30):
            words = " ".join(f"p{i}w{j}" for j in range(40 + i * 7))
            paragraphs.append(f"Paragraph {i} begins. {words}. Paragraph {i} ends!")
        return "\n\n".join(paragraphs)

    def test_round_trip_preserves_content(self, chunker, document):
        chunks = chunker.chunk(document, 300)
        assert squash("".join(c.text for c in chunks)) == squash(document)

    def test_chunks_never_exceed_ceiling(self, chunker, document):
        chunks = chunker.chunk(document, 300)
        assert chunks
        assert max(len(c) for c in chunks) <= 300

    def test_order_preserved(self, chunker, document):
        joined = " ".join(c.text for c in chunker.chunk(document, 250))
        positions = [joined.index(f"Paragraph {i} begins.") for i in range(30)]
        assert positions == sorted(positions)


class TestDefaultSentenceSplitter:
    """Punkt segmentation without an injected splitter."""

    def test_long_paragraph_splits_on_sentence_boundaries(self):
        chunker = DocumentChunker(max_chunk_size=500)
        text = " ".join(f"Sentence number {i} describes the weather today." for i in range(100))

        chunks = chunker.chunk(text)

        assert len(chunks) > 1
        assert all(len(c) <= 500 for c in chunks)
        assert all(c.text.startswith("Sentence number") for c in chunks)
        assert all(c.text.endswith("today.") for c in chunks)
        assert squash("".join(c.text for c in chunks)) == squash(text)
