"""
Result Types for Document Summarization

Data structures passed out of the summarization pipeline:

    ProcessingStage - Ordered pipeline stages
    ProcessingState - Stage plus optional message (the Error text)
    DocumentSummaryResult - Outcome of one process_document()/summarize_text() call

Usage:
    result = DocumentSummaryResult(
        title="quarterly-report",
        summary="Revenue grew...",
        chunk_summaries=["...", "..."],
        chunk_count=2,
        processing_time_seconds=12.4
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ProcessingStage(Enum):
    """Pipeline stages in the only order they may be visited."""
    IDLE = 0
    LOADING = 1
    CHUNKING = 2
    SUMMARIZING = 3
    FINALIZING = 4
    COMPLETE = 5
    ERROR = 6

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class ProcessingState:
    """
    Observable pipeline state.

    Attributes:
        stage: Current ProcessingStage.
        message: Failure description when stage is ERROR.
    """
    stage: ProcessingStage = ProcessingStage.IDLE
    message: str | None = None

    @classmethod
    def error(cls, message: str) -> ProcessingState:
        return cls(ProcessingStage.ERROR, message)

    @property
    def is_terminal(self) -> bool:
        return self.stage in (ProcessingStage.COMPLETE, ProcessingStage.ERROR)

    def can_advance_to(self, stage: ProcessingStage) -> bool:
        """
        Forward-only rule: a stage may repeat (progress updates) or move
        later; ERROR is reachable from any non-terminal stage.
        """
        if self.is_terminal:
            return False
        if stage is ProcessingStage.ERROR:
            return True
        return stage.value >= self.stage.value

    def __str__(self) -> str:
        if self.stage is ProcessingStage.ERROR:
            return f"Error: {self.message}"
        return self.stage.label


@dataclass
class DocumentSummaryResult:
    """
    Result of summarizing one document.

    Attributes:
        title: Document title (file name without extension).
        summary: Final combined summary; "" when cancelled or failed.
        chunk_summaries: Map-stage summaries in chunk order.
        chunk_count: Number of chunks the document was split into.
        processing_time_seconds: Wall-clock time for the run.
        cancelled: True if cancel_processing() ended the run early.
        error_message: Failure description if the run ended in ERROR.
    """
    title: str
    summary: str = ""
    chunk_summaries: list[str] = field(default_factory=list)
    chunk_count: int = 0
    processing_time_seconds: float = 0.0
    cancelled: bool = False
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return not self.cancelled and self.error_message is None
