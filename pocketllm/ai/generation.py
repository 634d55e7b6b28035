"""
Generation Engine for PocketLLM

Drives one generation at a time against the model held by the lifecycle
manager. Two entry points share the same decode loop:

- generate(): blocks and returns the final text. Failures come back as an
  explanatory string in place of model output; this method never raises.
- generate_stream(): decodes on a worker thread and yields text deltas.
  Concatenating every delta reproduces the latest published text. Failures
  are raised from the iterator as PocketLLMError subclasses.

Text is published every `publish_cadence` tokens by detokenizing the whole
buffer, so late normalization by the detokenizer is reflected in the next
publish. Cancellation is cooperative: stop() only sets a flag, which the
token callback checks after every token.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Iterator

from pocketllm.config import STREAM_QUEUE_POLL_SECONDS, ModelDescriptor
from pocketllm.conversation import ConversationMessage, build_prompt_history
from pocketllm.logging_config import debug_log, error, info

from .errors import GenerationError, PocketLLMError, classify_error
from .model_lifecycle import ModelLifecycleManager
from .runtime import DecodeResult, GenerationParameters

# Stream queue item kinds
_DELTA = "delta"
_DONE = "done"
_FAILED = "failed"


@dataclass
class GenerationSession:
    """Transient state for one generate()/generate_stream() call."""
    started_at: float = field(default_factory=time.perf_counter)
    finished_at: float | None = None
    output: str = ""
    token_count: int = 0
    tokens_per_second: float = 0.0
    cancelled: bool = False

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.perf_counter()
        return end - self.started_at

    def finish(self, cancelled: bool) -> None:
        self.finished_at = time.perf_counter()
        self.cancelled = cancelled
        elapsed = self.elapsed
        self.tokens_per_second = self.token_count / elapsed if elapsed > 0 else 0.0


class GenerationEngine:
    """
    Single-flight text generation.

    A call made while another is running is dropped: generate() returns ""
    and generate_stream() yields nothing. Callers that need ordering must
    serialize their own requests.

    Attributes:
        lifecycle: Source of model handles; load() is called on every request.
        params: Default parameters for calls that don't pass their own.
        output: Latest published text of the current or last session.
        stat: Throughput line of the last finished session.
    """

    def __init__(self, lifecycle: ModelLifecycleManager, params: GenerationParameters | None = None):
        self.lifecycle = lifecycle
        self.params = params or GenerationParameters()
        self.output = ""
        self.stat = ""
        self.last_session: GenerationSession | None = None

        self._session: GenerationSession | None = None
        self._running = False
        self._running_lock = threading.Lock()
        self._cancel = threading.Event()

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def elapsed_time(self) -> float:
        session = self._session or self.last_session
        return session.elapsed if session else 0.0

    @property
    def tokens_per_second(self) -> float:
        return self.last_session.tokens_per_second if self.last_session else 0.0

    def stop(self) -> None:
        """Ask the running generation to halt at its next checkpoint."""
        if self._running:
            debug_log("[GENERATE] Stop requested")
        self._cancel.set()

    # =========================================================================
    # Session bookkeeping
    # =========================================================================

    def _begin(self) -> GenerationSession | None:
        with self._running_lock:
            if self._running:
                return None
            self._running = True
        self._cancel.clear()
        self.output = ""
        self._session = GenerationSession()
        return self._session

    def _finish(self, session: GenerationSession) -> None:
        session.finish(cancelled=self._cancel.is_set())
        self.stat = f" Tokens/second: {session.tokens_per_second:.3f}"
        self.last_session = session
        info(
            f"[GENERATE] Finished: {session.token_count} tokens in {session.elapsed:.2f}s"
            f"{' (cancelled)' if session.cancelled else ''}"
        )
        self._session = None
        with self._running_lock:
            self._running = False

    def _decode(
        self,
        session: GenerationSession,
        descriptor: ModelDescriptor | str,
        history: Iterable[ConversationMessage],
        system_prompt: str,
        params: GenerationParameters,
        publish: Callable[[str], None],
    ) -> DecodeResult | None:
        handle = self.lifecycle.load(descriptor)
        if self._cancel.is_set():
            debug_log("[GENERATE] Cancelled before decoding started")
            return None

        prompt = build_prompt_history(history, system_prompt)
        params = replace(params, seed=int(time.time() * 1000) % 2**31)
        debug_log(
            f"[GENERATE] Decoding with {handle.descriptor.id}: {len(prompt)} messages, "
            f"max_tokens={params.max_tokens}, seed={params.seed}"
        )

        def on_tokens(tokens) -> bool:
            count = len(tokens)
            session.token_count = count
            if count % params.publish_cadence == 0:
                publish(handle.detokenize(tokens))
            return count < params.max_tokens and not self._cancel.is_set()

        result = self.lifecycle.runtime.decode(handle, prompt, params, on_tokens)
        if result.token_count:
            session.token_count = result.token_count
        publish(result.output)
        return result

    # =========================================================================
    # Batch
    # =========================================================================

    def generate(
        self,
        descriptor: ModelDescriptor | str,
        history: Iterable[ConversationMessage],
        system_prompt: str,
        params: GenerationParameters | None = None,
    ) -> str:
        """
        Generate a complete response.

        Returns:
            The generated text, the partial text if stopped, "" if another
            generation is running, or an explanation of the failure.
        """
        session = self._begin()
        if session is None:
            debug_log("[GENERATE] Generation already running; request dropped")
            return ""

        def publish(text: str) -> None:
            self.output = text
            session.output = text

        info(f"[GENERATE] Starting batch generation with {descriptor}")
        try:
            self._decode(session, descriptor, history, system_prompt, params or self.params, publish)
        except Exception as e:
            failure = classify_error(e)
            error(f"[GENERATE] Generation failed: {failure}", exc_info=not isinstance(e, PocketLLMError))
            publish(failure.explain())
        finally:
            self._finish(session)
        return session.output

    # =========================================================================
    # Streaming
    # =========================================================================

    def generate_stream(
        self,
        descriptor: ModelDescriptor | str,
        history: Iterable[ConversationMessage],
        system_prompt: str,
        params: GenerationParameters | None = None,
    ) -> Iterator[str]:
        """
        Generate a response as a sequence of text deltas.

        The single-flight check and the worker start happen immediately,
        not on first iteration. Closing the iterator early stops generation.

        Raises (from the iterator):
            PocketLLMError: classified load or decode failure.
        """
        session = self._begin()
        if session is None:
            debug_log("[GENERATE] Generation already running; stream request dropped")
            return iter(())

        items: queue.Queue = queue.Queue()
        history = tuple(history)
        worker = threading.Thread(
            target=self._stream_worker,
            args=(session, descriptor, history, system_prompt, params or self.params, items),
            name="pocketllm-generate",
            daemon=True,
        )
        info(f"[GENERATE] Starting streaming generation with {descriptor}")
        worker.start()
        return self._drain(session, items, worker)

    def _stream_worker(self, session, descriptor, history, system_prompt, params, items: queue.Queue) -> None:
        published = ""

        def publish(text: str) -> None:
            nonlocal published
            self.output = text
            session.output = text
            if len(text) > len(published):
                items.put((_DELTA, text[len(published):]))
                published = text

        outcome = (_FAILED, GenerationError("Generation interrupted"))
        try:
            self._decode(session, descriptor, history, system_prompt, params, publish)
            outcome = (_DONE, None)
        except Exception as e:
            failure = classify_error(e)
            error(f"[GENERATE] Streaming generation failed: {failure}", exc_info=not isinstance(e, PocketLLMError))
            outcome = (_FAILED, failure)
        finally:
            # running is already False when the consumer sees the end of the stream
            self._finish(session)
            items.put(outcome)

    def _drain(self, session: GenerationSession, items: queue.Queue, worker: threading.Thread) -> Iterator[str]:
        finished = False
        try:
            while True:
                try:
                    kind, payload = items.get(timeout=STREAM_QUEUE_POLL_SECONDS)
                except queue.Empty:
                    if not worker.is_alive() and items.empty():
                        finished = True
                        raise GenerationError("Generation worker exited without a result")
                    continue

                if kind == _DELTA:
                    yield payload
                elif kind == _FAILED:
                    finished = True
                    raise payload
                else:
                    finished = True
                    return
        finally:
            if not finished and self._session is session:
                self.stop()
