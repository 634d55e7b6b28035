"""
Inference Runtime Interface

Defines the contract between PocketLLM and whatever actually holds model
weights and decodes tokens. The lifecycle manager and generation engine only
talk to this interface; OllamaRuntime is the bundled implementation.

Architecture:
    InferenceRuntime (ABC)
        └── OllamaRuntime (REST API via requests)

Decoding is push-style: the runtime calls on_tokens(tokens) after every
decoded token with the full token buffer so far, and stops as soon as the
callback returns False.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from pocketllm.config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_PUBLISH_CADENCE,
    DEFAULT_TEMPERATURE,
    ModelDescriptor,
)

ProgressCallback = Callable[[float], None]
TokenCallback = Callable[[Sequence[Any]], bool]


@dataclass(frozen=True)
class GenerationParameters:
    """
    Sampling and publishing settings for one generation call.

    Attributes:
        temperature: Sampling temperature.
        max_tokens: Hard token budget.
        publish_cadence: Decode and publish text every N tokens.
        seed: Sampler seed; the engine fills it from the wall clock per call.
    """
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    publish_cadence: int = DEFAULT_PUBLISH_CADENCE
    seed: int | None = None

    def __post_init__(self):
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        if self.publish_cadence < 1:
            raise ValueError(f"publish_cadence must be positive, got {self.publish_cadence}")


@dataclass
class ModelHandle:
    """
    A loaded model owned by the lifecycle manager.

    Runtimes subclass this to carry their own state; the default detokenizer
    treats tokens as text pieces.
    """
    descriptor: ModelDescriptor
    metadata: dict = field(default_factory=dict)

    def detokenize(self, tokens: Sequence[Any]) -> str:
        return "".join(str(token) for token in tokens)


@dataclass(frozen=True)
class DecodeResult:
    output: str
    token_count: int
    tokens_per_second: float = 0.0


class InferenceRuntime(ABC):
    """Abstract inference backend."""

    @abstractmethod
    def acquire_local(self, descriptor: ModelDescriptor) -> ModelHandle:
        """
        Load a model from local storage only; never touches the network.

        Raises:
            ModelAssetMissing: No local copy exists.
        """

    @abstractmethod
    def acquire_with_download(
        self,
        descriptor: ModelDescriptor,
        on_progress: ProgressCallback,
    ) -> ModelHandle:
        """
        Load a model, downloading it first if necessary.

        Args:
            on_progress: Called with fractional completion in [0, 1].

        Raises:
            NetworkError: Classified download failure.
        """

    @abstractmethod
    def decode(
        self,
        handle: ModelHandle,
        prompt: list[dict[str, str]],
        params: GenerationParameters,
        on_tokens: TokenCallback,
    ) -> DecodeResult:
        """Generate tokens for a role/content prompt until on_tokens returns False."""

    def release(self, handle: ModelHandle) -> None:
        """Free the runtime resources held by a handle."""
