"""
Ollama Runtime for PocketLLM
Implements InferenceRuntime on top of Ollama's REST API.

Mapping onto the runtime contract:
- acquire_local: the model must already be listed by /api/tags; it is then
  warmed into memory with an empty /api/generate request
- acquire_with_download: streamed /api/pull, reporting completed/total bytes
- decode: streamed /api/chat, one streamed piece per token
- release: /api/generate with keep_alive=0 unloads the model

All transport failures leave this module as classified PocketLLMErrors.
"""

import json
from typing import Iterator

import requests

from pocketllm.config import (
    OLLAMA_API_BASE,
    OLLAMA_CONNECT_TIMEOUT_SECONDS,
    OLLAMA_CONTEXT_WINDOW,
    OLLAMA_KEEP_ALIVE,
    OLLAMA_PULL_TIMEOUT_SECONDS,
    OLLAMA_REQUEST_TIMEOUT_SECONDS,
    ModelDescriptor,
)
from pocketllm.logging_config import debug_log, warning

from .errors import (
    GenerationError,
    GenericNetworkError,
    ModelAssetMissing,
    PocketLLMError,
    classify_error,
    classify_message,
)
from .runtime import DecodeResult, GenerationParameters, InferenceRuntime, ModelHandle, TokenCallback


class OllamaHandle(ModelHandle):
    """Handle for a model resident in the Ollama server."""

    @property
    def model_name(self) -> str:
        return self.descriptor.id


class OllamaRuntime(InferenceRuntime):
    """
    Talks to a local Ollama server.

    The Ollama server keeps weights on disk and in memory; "local" here means
    the model is already present on that server, "download" means pulling it
    from the registry.
    """

    def __init__(self, api_base: str = OLLAMA_API_BASE, session: requests.Session = None):
        self.api_base = api_base.rstrip('/')
        self.session = session or requests.Session()

    def _timeout(self, read_seconds: float) -> tuple[float, float]:
        return (OLLAMA_CONNECT_TIMEOUT_SECONDS, read_seconds)

    def _post(self, path: str, payload: dict, read_timeout: float, stream: bool = False) -> requests.Response:
        try:
            response = self.session.post(
                f"{self.api_base}{path}",
                json=payload,
                timeout=self._timeout(read_timeout),
                stream=stream,
            )
        except requests.exceptions.RequestException as e:
            raise classify_error(e) from e

        if response.status_code != 200:
            body = response.text
            try:
                message = response.json().get('error', body)
            except ValueError:
                message = body
            response.close()
            error = classify_message(message)
            if error is None:
                error = GenerationError(f"Ollama returned status {response.status_code}: {message}")
            raise error
        return response

    def _iter_stream(self, response: requests.Response) -> Iterator[dict]:
        """Yield JSON objects from a newline-delimited stream."""
        try:
            for line in response.iter_lines():
                if not line:
                    continue
                data = json.loads(line)
                if 'error' in data:
                    raise classify_message(data['error']) or GenericNetworkError(data['error'])
                yield data
        except requests.exceptions.RequestException as e:
            raise classify_error(e) from e
        except json.JSONDecodeError as e:
            raise GenerationError(f"Malformed response from Ollama: {e}") from e

    def list_local_models(self) -> set[str]:
        try:
            response = self.session.get(
                f"{self.api_base}/api/tags",
                timeout=self._timeout(OLLAMA_CONNECT_TIMEOUT_SECONDS),
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise classify_error(e) from e

        names = set()
        for model in response.json().get('models', []):
            name = model.get('name', '')
            names.add(name)
            if name.endswith(':latest'):
                names.add(name[:-len(':latest')])
        debug_log(f"[OLLAMA] Found {len(names)} local models")
        return names

    def acquire_local(self, descriptor: ModelDescriptor) -> OllamaHandle:
        if descriptor.id not in self.list_local_models():
            raise ModelAssetMissing(f"no such file: model {descriptor.id} is not present locally")

        debug_log(f"[OLLAMA] Warming {descriptor.id}")
        response = self._post(
            "/api/generate",
            {"model": descriptor.id, "prompt": "", "stream": False, "keep_alive": OLLAMA_KEEP_ALIVE},
            read_timeout=OLLAMA_REQUEST_TIMEOUT_SECONDS,
        )
        response.close()
        return OllamaHandle(descriptor=descriptor)

    def acquire_with_download(self, descriptor: ModelDescriptor, on_progress) -> OllamaHandle:
        debug_log(f"[OLLAMA] Pulling {descriptor.id}")
        response = self._post(
            "/api/pull",
            {"model": descriptor.id, "stream": True},
            read_timeout=OLLAMA_PULL_TIMEOUT_SECONDS,
            stream=True,
        )
        succeeded = False
        with response:
            for data in self._iter_stream(response):
                total = data.get('total')
                completed = data.get('completed')
                if total and completed is not None:
                    on_progress(min(1.0, completed / total))
                if data.get('status') == 'success':
                    succeeded = True

        if not succeeded:
            raise GenericNetworkError(f"Download of {descriptor.id} ended before completion")
        on_progress(1.0)
        return self.acquire_local(descriptor)

    def decode(
        self,
        handle: ModelHandle,
        prompt: list[dict[str, str]],
        params: GenerationParameters,
        on_tokens: TokenCallback,
    ) -> DecodeResult:
        options = {
            "temperature": params.temperature,
            "num_predict": params.max_tokens,
            "num_ctx": OLLAMA_CONTEXT_WINDOW,
        }
        if params.seed is not None:
            options["seed"] = params.seed

        estimated_tokens = sum(len(m['content']) for m in prompt) // 4
        if estimated_tokens > OLLAMA_CONTEXT_WINDOW - 300:
            warning(
                f"Prompt ({estimated_tokens} estimated tokens) may be truncated. "
                f"Context window is {OLLAMA_CONTEXT_WINDOW} tokens."
            )

        response = self._post(
            "/api/chat",
            {
                "model": handle.descriptor.id,
                "messages": prompt,
                "stream": True,
                "keep_alive": OLLAMA_KEEP_ALIVE,
                "options": options,
            },
            read_timeout=OLLAMA_REQUEST_TIMEOUT_SECONDS,
            stream=True,
        )

        tokens: list[str] = []
        tokens_per_second = 0.0
        with response:
            for data in self._iter_stream(response):
                piece = data.get('message', {}).get('content', '')
                if piece:
                    tokens.append(piece)
                    if not on_tokens(tokens):
                        debug_log(f"[OLLAMA] Decoding stopped by caller after {len(tokens)} tokens")
                        break
                if data.get('done'):
                    eval_count = data.get('eval_count', 0)
                    eval_duration = data.get('eval_duration', 0)
                    if eval_duration:
                        tokens_per_second = eval_count / (eval_duration / 1e9)
                    break

        return DecodeResult(
            output=handle.detokenize(tokens),
            token_count=len(tokens),
            tokens_per_second=tokens_per_second,
        )

    def release(self, handle: ModelHandle) -> None:
        try:
            response = self._post(
                "/api/generate",
                {"model": handle.descriptor.id, "keep_alive": 0},
                read_timeout=OLLAMA_REQUEST_TIMEOUT_SECONDS,
            )
            response.close()
            debug_log(f"[OLLAMA] Released {handle.descriptor.id}")
        except PocketLLMError as e:
            warning(f"Could not unload {handle.descriptor.id}: {e}")
