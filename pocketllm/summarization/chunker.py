"""
Document Chunker

Splits extracted text into ordered, non-overlapping chunks of at most
`max_chunk_size` characters, preferring the largest natural boundary:

1. Paragraphs (one per non-blank line) are packed greedily.
2. A paragraph that alone exceeds the limit is split into sentences (NLTK
   Punkt) and the sentences are packed the same way.
3. A sentence that alone exceeds the limit is split on whitespace and the
   words are packed.

A single word longer than the limit is emitted as its own chunk.
Paragraphs are joined with "\n" inside a chunk; sentences and words with " ".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import nltk
from nltk.tokenize.punkt import PunktSentenceTokenizer, PunktTokenizer

from pocketllm.config import NLTK_AUTO_DOWNLOAD, load_chunking_config
from pocketllm.logging_config import debug_log, info, warning

PARAGRAPH_SEPARATOR = "\n"
INLINE_SEPARATOR = " "


@dataclass(frozen=True)
class DocumentChunk:
    """One contiguous piece of a document, in document order."""
    index: int
    text: str

    def __len__(self) -> int:
        return len(self.text)


class _ChunkPacker:
    """Greedy accumulator: appends pieces until the next one would overflow."""

    def __init__(self, max_size: int):
        self.max_size = max_size
        self.chunks: list[str] = []
        self._candidate = ""

    def fits(self, piece: str, separator: str) -> bool:
        if not self._candidate:
            return len(piece) <= self.max_size
        return len(self._candidate) + len(separator) + len(piece) <= self.max_size

    def add(self, piece: str, separator: str) -> None:
        if not self._candidate:
            self._candidate = piece
        elif self.fits(piece, separator):
            self._candidate += separator + piece
        else:
            self.flush()
            self._candidate = piece

    def flush(self) -> None:
        if self._candidate:
            self.chunks.append(self._candidate)
            self._candidate = ""


def _load_sentence_splitter(language: str, download_missing: bool) -> Callable[[str], list[str]]:
    """Punkt tokenizer for the language; untrained Punkt if the model is unavailable."""
    try:
        return PunktTokenizer(language).tokenize
    except LookupError:
        if download_missing:
            warning("NLTK punkt_tab data not found. Downloading...")
            nltk.download('punkt_tab', quiet=True)
            try:
                return PunktTokenizer(language).tokenize
            except LookupError:
                pass
    warning(f"NLTK sentence model for '{language}' unavailable; using untrained Punkt")
    return PunktSentenceTokenizer().tokenize


class DocumentChunker:
    """
    Greedy boundary-priority chunker.

    Args:
        max_chunk_size: Default ceiling in characters (config value if None)
        language: Punkt language for sentence segmentation
        download_missing: Fetch NLTK punkt_tab data when it is not installed
        sentence_splitter: Replacement sentence splitter (text -> sentences)
    """

    def __init__(
        self,
        max_chunk_size: int | None = None,
        language: str | None = None,
        download_missing: bool = NLTK_AUTO_DOWNLOAD,
        sentence_splitter: Callable[[str], list[str]] | None = None,
    ):
        settings = load_chunking_config()
        self.max_chunk_size = settings['max_chunk_size'] if max_chunk_size is None else max_chunk_size
        self.language = language or settings['sentence_language']
        self._download_missing = download_missing
        self._sentence_splitter = sentence_splitter

    def split_sentences(self, paragraph: str) -> list[str]:
        if self._sentence_splitter is None:
            self._sentence_splitter = _load_sentence_splitter(self.language, self._download_missing)
        return [s.strip() for s in self._sentence_splitter(paragraph) if s.strip()]

    def chunk(self, text: str, max_chunk_size: int | None = None) -> list[DocumentChunk]:
        """
        Split text into chunks no longer than max_chunk_size characters.

        Returns:
            DocumentChunks in document order; [] for empty or blank text.
        """
        max_size = self.max_chunk_size if max_chunk_size is None else max_chunk_size
        if max_size < 1:
            raise ValueError(f"max_chunk_size must be positive, got {max_size}")

        paragraphs = [p for p in text.splitlines() if p.strip()]
        packer = _ChunkPacker(max_size)

        for paragraph in paragraphs:
            if len(paragraph) <= max_size:
                packer.add(paragraph, PARAGRAPH_SEPARATOR)
                continue

            debug_log(f"[CHUNKER] Paragraph of {len(paragraph)} chars split into sentences")
            separator = PARAGRAPH_SEPARATOR
            for sentence in self.split_sentences(paragraph):
                if len(sentence) <= max_size:
                    packer.add(sentence, separator)
                else:
                    debug_log(f"[CHUNKER] Sentence of {len(sentence)} chars split into words")
                    for word in sentence.split():
                        packer.add(word, separator)
                        separator = INLINE_SEPARATOR
                separator = INLINE_SEPARATOR

        packer.flush()
        chunks = [DocumentChunk(index=i, text=t) for i, t in enumerate(packer.chunks)]
        info(f"[CHUNKER] {len(text)} chars -> {len(chunks)} chunks (max {max_size})")
        return chunks
