"""
PocketLLM - on-device inference orchestration.

Model lifecycle with offline-first loading, batch and streaming generation
with cooperative cancellation, and map-reduce document summarization.
"""

__version__ = "0.1.0"
