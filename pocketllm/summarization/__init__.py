"""
Summarization Package for PocketLLM - Map-Reduce Document Summarization.

    from pocketllm.summarization import (
        DocumentChunker, DocumentChunk,
        SummarizationPipeline, DocumentSummaryResult,
        ProcessingStage, ProcessingState,
    )

Flow:
    ┌─────────────────────────────────────────────────────────────┐
    │  TextExtractor → DocumentChunker → chunks                  │
    │            ↓                                                │
    │  GenerationEngine (one call per chunk) → chunk summaries   │
    │            ↓                                                │
    │  GenerationEngine (one call) → final summary               │
    └─────────────────────────────────────────────────────────────┘
"""

from .chunker import DocumentChunk, DocumentChunker
from .pipeline import SummarizationPipeline
from .result_types import DocumentSummaryResult, ProcessingStage, ProcessingState

__all__ = [
    'DocumentChunk',
    'DocumentChunker',
    'SummarizationPipeline',
    'DocumentSummaryResult',
    'ProcessingStage',
    'ProcessingState',
]
