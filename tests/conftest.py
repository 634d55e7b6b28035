"""
Shared fixtures for the PocketLLM test suite.

The application directories are pointed at a throwaway location before
pocketllm is imported, and NLTK downloads are disabled so tests never touch
the network.
"""

import os
import tempfile
import threading

os.environ.setdefault("POCKETLLM_HOME", tempfile.mkdtemp(prefix="pocketllm-tests-"))
os.environ.setdefault("POCKETLLM_NLTK_DOWNLOAD", "false")

import pytest

from pocketllm.ai.errors import ModelAssetMissing
from pocketllm.ai.model_lifecycle import ModelLifecycleManager
from pocketllm.ai.runtime import DecodeResult, InferenceRuntime, ModelHandle
from pocketllm.config import ModelDescriptor
from pocketllm.user_preferences import UserPreferencesManager

TINY = ModelDescriptor("tiny:1b", "Tiny", 0.1, ("chat", "summarize"))
SMALL = ModelDescriptor("small:3b", "Small", 0.3, ("chat", "summarize"))
CATALOG = [TINY, SMALL]


class FakeRuntime(InferenceRuntime):
    """
    Scripted InferenceRuntime.

    Args:
        tokens: Token pieces emitted by every decode() call
        local_models: Model ids acquire_local() can find
        local_failures: Number of initial acquire_local() calls that fail
        download_error: Exception raised by acquire_with_download()
        decode_error: Exception raised by decode()
        pause_after: Token count after which decode() blocks until resume is set
    """

    def __init__(
        self,
        tokens=None,
        local_models=(),
        local_failures=0,
        download_error=None,
        decode_error=None,
        pause_after=None,
    ):
        self.tokens = list(tokens) if tokens is not None else [f"t{i} " for i in range(20)]
        self.local_models = set(local_models)
        self.local_failures = local_failures
        self.download_error = download_error
        self.decode_error = decode_error
        self.pause_after = pause_after

        self.calls = []
        self.prompts = []
        self.decode_params = []
        self.released = []
        self.paused = threading.Event()
        self.resume = threading.Event()

    @property
    def download_calls(self) -> int:
        return sum(1 for name, _ in self.calls if name == "acquire_with_download")

    def acquire_local(self, descriptor):
        self.calls.append(("acquire_local", descriptor.id))
        if self.local_failures > 0:
            self.local_failures -= 1
            raise ModelAssetMissing(f"no such file: {descriptor.id}")
        if descriptor.id not in self.local_models:
            raise FileNotFoundError(f"{descriptor.id} weights")
        return ModelHandle(descriptor)

    def acquire_with_download(self, descriptor, on_progress):
        self.calls.append(("acquire_with_download", descriptor.id))
        if self.download_error is not None:
            raise self.download_error
        on_progress(0.5)
        on_progress(1.0)
        self.local_models.add(descriptor.id)
        return ModelHandle(descriptor)

    def decode(self, handle, prompt, params, on_tokens):
        self.prompts.append(prompt)
        self.decode_params.append(params)
        if self.decode_error is not None:
            raise self.decode_error

        tokens = []
        for token in self.tokens:
            tokens.append(token)
            if not on_tokens(tokens):
                break
            if self.pause_after is not None and len(tokens) == self.pause_after:
                self.paused.set()
                assert self.resume.wait(timeout=5), "test never resumed decoding"
        return DecodeResult(output=handle.detokenize(tokens), token_count=len(tokens))

    def release(self, handle):
        self.released.append(handle.descriptor.id)


@pytest.fixture
def preferences(tmp_path):
    return UserPreferencesManager(tmp_path / "user_preferences.json")


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def lifecycle(runtime, preferences):
    return ModelLifecycleManager(runtime, preferences=preferences, catalog=CATALOG)
