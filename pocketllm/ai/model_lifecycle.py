"""
Model Lifecycle Manager for PocketLLM

Owns the single resident model handle. load() is safe to call before every
generation: while the requested model is resident it returns the existing
handle without touching the runtime.

Acquisition policy (offline-first):
1. If the model was installed before, or offline mode is forced, try a
   local-only load. Offline mode never falls through to the network.
2. Otherwise (or if the local load failed) load with download, reporting
   progress. Success marks the model installed.
3. If the download fails for a model that was installed before, retry the
   local-only load once.

model_info carries a human-readable status line for the UI; it is purely
informational.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from pocketllm.config import ModelDescriptor, available_models
from pocketllm.logging_config import debug_log, error, info
from pocketllm.system_resources import resident_memory_mb
from pocketllm.user_preferences import UserPreferencesManager, get_user_preferences

from .errors import ModelNotFound, ModelUnavailableOffline, PocketLLMError, classify_error
from .runtime import InferenceRuntime, ModelHandle, ProgressCallback


@dataclass(frozen=True)
class Idle:
    """No model is resident."""


@dataclass(frozen=True)
class Loaded:
    descriptor: ModelDescriptor
    handle: ModelHandle


LoadState = Idle | Loaded

IDLE = Idle()


class ModelLifecycleManager:
    """
    One-slot cache for the loaded model.

    Attributes:
        runtime: InferenceRuntime that performs acquisition.
        preferences: Key-value store holding installed/offline flags.
        load_state: Idle, or Loaded(descriptor, handle).
        model_info: Latest status line ("Downloading Core 1B: 42%").
        progress: Download progress fraction for the current acquisition.
    """

    def __init__(
        self,
        runtime: InferenceRuntime,
        preferences: UserPreferencesManager | None = None,
        catalog: Sequence[ModelDescriptor] | None = None,
        status_callback: Callable[[str], None] | None = None,
    ):
        self.runtime = runtime
        self.preferences = preferences or get_user_preferences()
        self.catalog = list(catalog) if catalog is not None else available_models()
        self.status_callback = status_callback
        self.load_state: LoadState = IDLE
        self.model_info = ""
        self.progress = 0.0
        self._lock = threading.RLock()

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def is_loaded(self) -> bool:
        return isinstance(self.load_state, Loaded)

    @property
    def current_descriptor(self) -> ModelDescriptor | None:
        state = self.load_state
        return state.descriptor if isinstance(state, Loaded) else None

    def _set_info(self, message: str) -> None:
        self.model_info = message
        debug_log(f"[LIFECYCLE] {message}")
        if self.status_callback:
            self.status_callback(message)

    def resolve(self, model: ModelDescriptor | str) -> ModelDescriptor:
        """
        Find a catalogue entry by descriptor, id or display name.

        Raises:
            ModelNotFound: The model is not in the catalogue.
        """
        key = model.id if isinstance(model, ModelDescriptor) else model
        for descriptor in self.catalog:
            if key in (descriptor.id, descriptor.name):
                return descriptor
        raise ModelNotFound(key)

    # =========================================================================
    # Loading
    # =========================================================================

    def load(
        self,
        model: ModelDescriptor | str,
        on_progress: ProgressCallback | None = None,
    ) -> ModelHandle:
        """
        Return a handle for the model, acquiring it if it is not resident.

        Loading a different model replaces the resident one.

        Raises:
            ModelNotFound: Unknown model.
            ModelUnavailableOffline: Offline mode is on and no local copy loads.
            NetworkError / ModelAssetMissing / GenerationError: classified
                acquisition failures.
        """
        descriptor = self.resolve(model)

        with self._lock:
            state = self.load_state
            if isinstance(state, Loaded):
                if state.descriptor.id == descriptor.id:
                    return state.handle
                debug_log(f"[LIFECYCLE] Replacing {state.descriptor.id} with {descriptor.id}")
                self._release(state)

            self.progress = 0.0
            handle = self._acquire(descriptor, on_progress)
            self.load_state = Loaded(descriptor, handle)
            self.preferences.set_last_used_model(descriptor.id)
            self._set_info(f"Loaded {descriptor.id}.  Memory: {resident_memory_mb()}M")
            info(f"[LIFECYCLE] {descriptor.name} is resident")
            return handle

    def _acquire(self, descriptor: ModelDescriptor, on_progress: ProgressCallback | None) -> ModelHandle:
        self._set_info(f"Preparing to load {descriptor.name}...")

        force_offline = self.preferences.force_offline_mode
        was_installed = self.preferences.is_model_installed(descriptor.id)

        if was_installed or force_offline:
            try:
                self._set_info(f"Loading local model {descriptor.name}...")
                handle = self.runtime.acquire_local(descriptor)
                self.preferences.mark_model_installed(descriptor.id)
                return handle
            except Exception as e:
                local_error = classify_error(e)
                debug_log(f"[LIFECYCLE] Local load failed: {local_error}")
                if force_offline:
                    self._set_info("Local model not available and offline mode is enabled.")
                    raise ModelUnavailableOffline(descriptor.id) from local_error
                self._set_info("Local model not available. Attempting download...")

        try:
            handle = self.runtime.acquire_with_download(
                descriptor, self._progress_reporter(descriptor, on_progress)
            )
        except Exception as e:
            download_error = classify_error(e)
            if not self.preferences.is_model_installed(descriptor.id):
                self._set_info(f"Download failed: {download_error}")
                raise download_error

            self._set_info("Download failed. Trying to use locally cached model...")
            try:
                return self.runtime.acquire_local(descriptor)
            except Exception as retry:
                raise classify_error(retry) from download_error

        self.preferences.mark_model_installed(descriptor.id)
        return handle

    def _progress_reporter(
        self,
        descriptor: ModelDescriptor,
        on_progress: ProgressCallback | None,
    ) -> ProgressCallback:
        def report(fraction: float) -> None:
            self.progress = fraction
            self._set_info(f"Downloading {descriptor.name}: {int(fraction * 100)}%")
            if on_progress:
                on_progress(fraction)
        return report

    # =========================================================================
    # Switching / unloading
    # =========================================================================

    def _release(self, state: Loaded) -> None:
        self.load_state = IDLE
        try:
            self.runtime.release(state.handle)
        except Exception as e:
            error(f"[LIFECYCLE] Releasing {state.descriptor.id} failed: {classify_error(e)}")

    def unload(self) -> None:
        """Release the resident model, if any, and return to Idle."""
        with self._lock:
            state = self.load_state
            if isinstance(state, Loaded):
                self._release(state)
                self._set_info(f"Unloaded {state.descriptor.id}")

    def switch_model(self, model: ModelDescriptor | str) -> bool:
        """
        Drop the resident model and load another one.

        Returns:
            True if the new model is resident, False if loading failed
            (the failure is logged and left in model_info).
        """
        with self._lock:
            self.progress = 0.0
            self.unload()
            try:
                self.load(model)
                return True
            except PocketLLMError as e:
                error(f"[LIFECYCLE] Switching to {model} failed: {e}")
                self.model_info = e.explain()
                return False

    def force_local_model_use(self) -> bool:
        """
        Turn on offline mode, but only while no model is resident.

        Returns:
            True if the preference was set.
        """
        if isinstance(self.load_state, Idle):
            self.preferences.force_offline_mode = True
            return True
        return False
