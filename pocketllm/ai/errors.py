"""
Error types for model acquisition, generation and document processing.

Low-level failures (requests exceptions, socket errors, runtime error
strings) are mapped onto this hierarchy by classify_error() so nothing
above the runtime adapter has to know about transport details.

explain() returns text written for the person at the keyboard; batch
generation returns it in place of model output.
"""

import errno
import socket

import requests


class PocketLLMError(Exception):
    """Base class for every error this package raises on purpose."""

    user_message: str | None = None

    def __init__(self, message: str = None):
        super().__init__(message or self.user_message or self.__class__.__name__)

    def explain(self) -> str:
        return self.user_message or f"Failed: {self}"


class ModelNotFound(PocketLLMError):
    """The requested model is not in the catalogue."""

    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"Model not found: {model_id}")


class ModelUnavailableOffline(PocketLLMError):
    """Offline mode is on and no local copy of the model could be loaded."""

    user_message = "Local model not available and offline mode is enabled."

    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"Model {model_id} is not available offline")


class ModelAssetMissing(PocketLLMError):
    """The runtime has no local copy of the model's files."""

    user_message = (
        "Model not found locally. Please download the model first with an internet connection."
    )


class NetworkError(PocketLLMError):
    """Base class for classified network failures."""


class NetworkTimeout(NetworkError):
    user_message = (
        "Connection timed out. Since models are designed to work offline, "
        "try restarting the app to use the local copy."
    )


class NetworkOffline(NetworkError):
    user_message = (
        "Not connected to the internet. If this model was previously downloaded, "
        "try restarting the app to use the local copy."
    )


class NetworkConnectionLost(NetworkError):
    user_message = (
        "Network connection was lost. If this model was previously downloaded, "
        "restart the app to force using local copy."
    )


class NetworkHostUnreachable(NetworkError):
    user_message = (
        "Cannot connect to server. If this model was previously downloaded, "
        "restart the app to force using local copy."
    )


class GenericNetworkError(NetworkError):

    def explain(self) -> str:
        return (
            f"Network error: {self}. If this model was previously downloaded, "
            "restart the app to use local copy."
        )


class GenerationError(PocketLLMError):
    """Unclassified failure inside the inference runtime."""


class DocumentError(PocketLLMError):
    """Base class for text-extraction failures."""


class UnsupportedDocumentFormat(DocumentError):
    user_message = "This document format is not supported."


class DocumentExtractionFailed(DocumentError):
    user_message = "Failed to extract text from the document."


# Substrings of runtime/transport messages, checked in order
_MISSING_ASSET_MARKERS = ("file doesn't exist", "no such file", "not found, try pulling")
_MESSAGE_RULES = [
    (("timed out", "timeout", "deadline exceeded"), NetworkTimeout),
    (("network is unreachable", "not connected to the internet", "offline"), NetworkOffline),
    (("connection reset", "connection aborted", "broken pipe", "remotedisconnected",
      "unexpected eof", "connection lost"), NetworkConnectionLost),
    (("no such host", "name or service not known", "nodename nor servname",
      "temporary failure in name resolution", "connection refused",
      "failed to establish a new connection", "cannot connect"), NetworkHostUnreachable),
]


def classify_message(message: str) -> PocketLLMError | None:
    """
    Classify a runtime error string.

    Returns:
        A typed error, or None when the message matches no known pattern.
    """
    lowered = message.lower()
    if any(marker in lowered for marker in _MISSING_ASSET_MARKERS):
        return ModelAssetMissing(message)
    for markers, error_type in _MESSAGE_RULES:
        if any(marker in lowered for marker in markers):
            return error_type(message)
    return None


def classify_error(exc: BaseException) -> PocketLLMError:
    """
    Map any exception onto the PocketLLMError hierarchy.

    Already-typed errors pass through unchanged. The original exception is
    attached as __cause__ of the returned error.
    """
    if isinstance(exc, PocketLLMError):
        return exc

    classified: PocketLLMError | None = None
    if isinstance(exc, (requests.exceptions.Timeout, socket.timeout, TimeoutError)):
        classified = NetworkTimeout(str(exc))
    elif isinstance(exc, FileNotFoundError):
        classified = ModelAssetMissing(str(exc))
    elif isinstance(exc, socket.gaierror):
        classified = NetworkHostUnreachable(str(exc))
    elif isinstance(exc, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        classified = NetworkConnectionLost(str(exc))
    elif isinstance(exc, ConnectionRefusedError):
        classified = NetworkHostUnreachable(str(exc))
    elif isinstance(exc, OSError) and exc.errno in (errno.ENETUNREACH, errno.ENETDOWN):
        classified = NetworkOffline(str(exc))
    elif isinstance(exc, requests.exceptions.ConnectionError):
        classified = classify_message(str(exc))
        if not isinstance(classified, NetworkError):
            classified = NetworkHostUnreachable(str(exc))
    elif isinstance(exc, requests.exceptions.RequestException):
        classified = classify_message(str(exc)) or GenericNetworkError(str(exc))
    else:
        classified = classify_message(str(exc)) or GenerationError(str(exc))

    classified.__cause__ = exc
    return classified
