"""
Summarization Pipeline - Map-Reduce Document Summarization

Turns a document into one summary in five observable stages:

    Idle -> Loading -> Chunking -> Summarizing -> Finalizing -> Complete
                  |________________ Error(message) ________________|

1. Loading (0.1): text extraction via a TextExtractor
2. Chunking (0.3): DocumentChunker with max_chunk_size
3. Summarizing (0.5 -> 0.8): one generation per chunk (map)
4. Finalizing (0.8): one generation over the joined chunk summaries (reduce)
5. Complete (1.0)

Chunks are summarized strictly one after another because the generation
engine runs a single generation at a time.

Cancellation is checked before every chunk and before the reduce step. A
cancelled run stops silently: it returns an empty summary, never reaches
Complete and is not an error.

Usage:
    pipeline = SummarizationPipeline(engine)
    result = pipeline.process_document("report.pdf")
    print(pipeline.state, pipeline.document_summary)
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable

import pandas as pd

from pocketllm.ai.errors import DocumentExtractionFailed, classify_error
from pocketllm.ai.generation import GenerationEngine
from pocketllm.config import (
    CHUNK_PROMPT_TEMPLATE,
    CHUNK_SYSTEM_PROMPT,
    FINAL_PROMPT_TEMPLATE,
    FINAL_SYSTEM_PROMPT,
    ModelDescriptor,
    default_model,
    load_chunking_config,
)
from pocketllm.conversation import ConversationMessage, Role
from pocketllm.extraction import RawTextExtractor, TextExtractor
from pocketllm.logging_config import Timer, debug_log, error, info

from .chunker import DocumentChunk, DocumentChunker
from .result_types import DocumentSummaryResult, ProcessingStage, ProcessingState

StateCallback = Callable[[ProcessingState, float], None]

CHUNK_TABLE_COLUMNS = ['chunk_num', 'chunk_chars', 'chunk_summary', 'processing_time_sec']


class SummarizationPipeline:
    """
    Map-reduce document summarizer driving a GenerationEngine.

    Attributes:
        engine: GenerationEngine used for every map and reduce call.
        chunker: DocumentChunker for the map stage.
        extractor: TextExtractor for the Loading stage.
        model: Model to summarize with; defaults to the resident model,
            then the catalogue default.
        state / progress: Current ProcessingState and fraction in [0, 1].
        document_title / document_summary: Final outputs of the last run.
        chunks: Chunks of the last run.
        chunk_table: DataFrame with one row per chunk (diagnostics).
        state_history: (state, progress) for every transition of the last run.
    """

    def __init__(
        self,
        engine: GenerationEngine,
        chunker: DocumentChunker | None = None,
        extractor: TextExtractor | None = None,
        model: ModelDescriptor | str | None = None,
        max_chunk_size: int | None = None,
        max_summary_input_size: int | None = None,
    ):
        settings = load_chunking_config()
        self.engine = engine
        self.chunker = chunker or DocumentChunker()
        self.extractor = extractor or RawTextExtractor()
        self.model = model
        self.max_chunk_size = max_chunk_size or settings['max_chunk_size']
        self.max_summary_input_size = max_summary_input_size or settings['max_summary_input_size']

        self.state = ProcessingState()
        self.progress = 0.0
        self.document_title = ""
        self.document_summary = ""
        self.chunks: list[DocumentChunk] = []
        self.chunk_summaries: list[str] = []
        self.chunk_table = pd.DataFrame(columns=CHUNK_TABLE_COLUMNS)
        self.state_history: list[tuple[ProcessingState, float]] = []

        self._cancel = threading.Event()
        self._state_callback: StateCallback | None = None

    # =========================================================================
    # Public API
    # =========================================================================

    def cancel_processing(self) -> None:
        """Stop at the next chunk boundary and halt the in-flight generation."""
        info("[PIPELINE] Cancellation requested")
        self._cancel.set()
        self.engine.stop()

    def process_document(self, file_ref, state_callback: StateCallback | None = None) -> DocumentSummaryResult:
        """
        Extract, chunk and summarize a document.

        Args:
            file_ref: Path of the document.
            state_callback: Called with (state, progress) on every transition.

        Returns:
            DocumentSummaryResult; failures are reported through
            error_message and the ERROR state rather than raised.
        """
        path = Path(file_ref)
        self._start(path.stem, state_callback)
        start_time = time.perf_counter()

        self._advance(ProcessingStage.LOADING, 0.1)
        try:
            text = self.extractor.extract(path, path.suffix)
        except Exception as e:
            return self._fail(e, start_time)

        return self._run(text, start_time)

    def summarize_text(
        self,
        text: str,
        title: str,
        state_callback: StateCallback | None = None,
    ) -> DocumentSummaryResult:
        """Run the pipeline on already extracted text, starting at Chunking."""
        self._start(title, state_callback)
        return self._run(text, time.perf_counter())

    # =========================================================================
    # Stages
    # =========================================================================

    def _run(self, text: str, start_time: float) -> DocumentSummaryResult:
        try:
            self._advance(ProcessingStage.CHUNKING, 0.3)
            self.chunks = self.chunker.chunk(text, self.max_chunk_size)
            if not self.chunks:
                raise DocumentExtractionFailed("Document contains no text to summarize")
            self._prepare_chunk_table()

            self._advance(ProcessingStage.SUMMARIZING, 0.5)
            if not self._summarize_chunks():
                return self._cancelled(start_time)

            self._advance(ProcessingStage.FINALIZING, 0.8)
            if self._cancel.is_set():
                return self._cancelled(start_time)
            self.document_summary = self._create_final_summary()

            self._advance(ProcessingStage.COMPLETE, 1.0)
        except Exception as e:
            return self._fail(e, start_time)

        elapsed = time.perf_counter() - start_time
        info(f"[PIPELINE] '{self.document_title}' summarized: {len(self.chunks)} chunks in {elapsed:.1f}s")
        return DocumentSummaryResult(
            title=self.document_title,
            summary=self.document_summary,
            chunk_summaries=list(self.chunk_summaries),
            chunk_count=len(self.chunks),
            processing_time_seconds=elapsed,
        )

    def _summarize_chunks(self) -> bool:
        """Map stage. Returns False if cancelled before all chunks were summarized."""
        total = len(self.chunks)
        model = self._model()

        for i, chunk in enumerate(self.chunks):
            if self._cancel.is_set():
                debug_log(f"[PIPELINE] Cancelled before chunk {i + 1}/{total}")
                return False

            history = (ConversationMessage(
                role=Role.USER,
                content=CHUNK_PROMPT_TEMPLATE.format(text=chunk.text[:self.max_chunk_size]),
            ),)
            chunk_start = time.perf_counter()
            with Timer(f"Chunk {i + 1}/{total} summary"):
                summary = self.engine.generate(model, history, CHUNK_SYSTEM_PROMPT)
            self.chunk_summaries.append(summary)

            row = self.chunk_table['chunk_num'] == i + 1
            self.chunk_table.loc[row, 'chunk_summary'] = summary
            self.chunk_table.loc[row, 'processing_time_sec'] = time.perf_counter() - chunk_start

            self._advance(ProcessingStage.SUMMARIZING, 0.5 + 0.3 * (i + 1) / total)

        return True

    def _create_final_summary(self) -> str:
        """Reduce stage."""
        combined = "\n\n".join(self.chunk_summaries)[:self.max_summary_input_size]
        debug_log(f"[PIPELINE] Final summary input: {len(combined)} chars from {len(self.chunk_summaries)} summaries")
        history = (ConversationMessage(role=Role.USER, content=FINAL_PROMPT_TEMPLATE.format(text=combined)),)
        with Timer("Final summary"):
            return self.engine.generate(self._model(), history, FINAL_SYSTEM_PROMPT)

    # =========================================================================
    # State bookkeeping
    # =========================================================================

    def _model(self) -> ModelDescriptor | str:
        return self.model or self.engine.lifecycle.current_descriptor or default_model()

    def _start(self, title: str, state_callback: StateCallback | None) -> None:
        self._cancel.clear()
        self._state_callback = state_callback
        self.state = ProcessingState()
        self.progress = 0.0
        self.state_history = []
        self.document_title = title
        self.document_summary = ""
        self.chunks = []
        self.chunk_summaries = []
        self.chunk_table = pd.DataFrame(columns=CHUNK_TABLE_COLUMNS)
        info(f"[PIPELINE] Processing '{title}'")

    def _prepare_chunk_table(self) -> None:
        self.chunk_table = pd.DataFrame([
            {
                'chunk_num': chunk.index + 1,
                'chunk_chars': len(chunk.text),
                'chunk_summary': '',
                'processing_time_sec': 0.0,
            }
            for chunk in self.chunks
        ], columns=CHUNK_TABLE_COLUMNS)
        debug_log(f"[PIPELINE] Prepared chunk table with {len(self.chunk_table)} rows")

    def _advance(self, stage: ProcessingStage, progress: float, message: str | None = None) -> None:
        if not self.state.can_advance_to(stage):
            raise ValueError(f"Invalid pipeline transition: {self.state} -> {stage.label}")

        if stage is not self.state.stage:
            debug_log(f"[PIPELINE] Stage -> {stage.name} ({progress:.2f})")
        self.state = ProcessingState(stage, message)
        self.progress = progress
        self.state_history.append((self.state, progress))
        if self._state_callback:
            self._state_callback(self.state, progress)

    def _fail(self, exc: Exception, start_time: float) -> DocumentSummaryResult:
        failure = classify_error(exc)
        error(f"[PIPELINE] '{self.document_title}' failed: {failure}")
        self._advance(ProcessingStage.ERROR, 0.0, str(failure))
        return DocumentSummaryResult(
            title=self.document_title,
            chunk_count=len(self.chunks),
            processing_time_seconds=time.perf_counter() - start_time,
            error_message=str(failure),
        )

    def _cancelled(self, start_time: float) -> DocumentSummaryResult:
        info(f"[PIPELINE] '{self.document_title}' cancelled at {self.state}")
        self.document_summary = ""
        self.chunk_summaries = []
        return DocumentSummaryResult(
            title=self.document_title,
            chunk_count=len(self.chunks),
            processing_time_seconds=time.perf_counter() - start_time,
            cancelled=True,
        )
