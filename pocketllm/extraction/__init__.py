"""
Extraction Package

Turns documents into the plain text consumed by the summarization pipeline.
"""

from pocketllm.extraction.text_extractor import RawTextExtractor, TextExtractor

__all__ = ['RawTextExtractor', 'TextExtractor']
