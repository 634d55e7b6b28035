"""
PocketLLM AI Module
Model lifecycle and text generation on top of a local inference runtime.

Architecture:
=============
    GenerationEngine ──load()──▶ ModelLifecycleManager ──▶ InferenceRuntime
          │                                                   └── OllamaRuntime
          └──────────────── decode(handle, ...) ─────────────────────┘

- ModelLifecycleManager keeps at most one model resident and applies the
  offline-first acquisition policy.
- GenerationEngine runs one generation at a time, batch or streaming, with
  cooperative cancellation.
- OllamaRuntime is the bundled runtime; anything implementing
  InferenceRuntime can replace it.
"""

from .errors import PocketLLMError, classify_error
from .generation import GenerationEngine, GenerationSession
from .model_lifecycle import Idle, Loaded, ModelLifecycleManager
from .ollama_runtime import OllamaRuntime
from .runtime import DecodeResult, GenerationParameters, InferenceRuntime, ModelHandle

__all__ = [
    'DecodeResult',
    'GenerationEngine',
    'GenerationParameters',
    'GenerationSession',
    'Idle',
    'InferenceRuntime',
    'Loaded',
    'ModelHandle',
    'ModelLifecycleManager',
    'OllamaRuntime',
    'PocketLLMError',
    'classify_error',
]
