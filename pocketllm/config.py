"""
PocketLLM Configuration Module
Centralized configuration for the on-device assistant core.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "PocketLLM"
APPDATA_DIR = Path(
    os.environ.get('POCKETLLM_HOME')
    or Path(os.environ.get('APPDATA', os.path.expanduser('~/.config'))) / APP_NAME
)
CACHE_DIR = APPDATA_DIR / "cache"
LOGS_DIR = APPDATA_DIR / "logs"
CONFIG_DIR = APPDATA_DIR / "config"

# Ensure directories exist
for directory in [APPDATA_DIR, CACHE_DIR, LOGS_DIR, CONFIG_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

# Persisted preference keys (shared with the key-value store)
PREFERENCES_FILE = CONFIG_DIR / "user_preferences.json"
INSTALLED_KEY_PREFIX = "model_installed_"
FORCE_OFFLINE_KEY = "force_offline_model_loading"

# Inference Runtime Configuration (Ollama REST API)
OLLAMA_API_BASE = os.environ.get('OLLAMA_HOST', "http://localhost:11434")
OLLAMA_CONNECT_TIMEOUT_SECONDS = 5
OLLAMA_REQUEST_TIMEOUT_SECONDS = 60  # Per-request read timeout
OLLAMA_PULL_TIMEOUT_SECONDS = 300    # Download streams can stall between layers
OLLAMA_KEEP_ALIVE = "30m"            # How long Ollama keeps the resident model warm
OLLAMA_CONTEXT_WINDOW = 4096

# Generation Defaults
# Publishing every 4 tokens looks continuous and costs ~15% less throughput
# than publishing every token.
DEFAULT_TEMPERATURE = 0.5
DEFAULT_MAX_TOKENS = 4096
DEFAULT_PUBLISH_CADENCE = 4
STREAM_QUEUE_POLL_SECONDS = 0.1

# Document Pipeline Sizes (characters)
MAX_CHUNK_SIZE = 2000
MAX_SUMMARY_INPUT_SIZE = 8000
SENTENCE_LANGUAGE = "english"
NLTK_AUTO_DOWNLOAD = os.environ.get('POCKETLLM_NLTK_DOWNLOAD', 'true').lower() == 'true'

# Document Extraction
SUPPORTED_DOCUMENT_TYPES = ('.txt', '.md', '.rtf', '.pdf')
MAX_FILE_SIZE_MB = 200
LARGE_FILE_WARNING_MB = 25

# Document Pipeline Prompts
CHUNK_SYSTEM_PROMPT = (
    "You are a document summarization assistant. Create concise summaries "
    "that preserve the most important information."
)
CHUNK_PROMPT_TEMPLATE = (
    "Summarize the following text in a concise manner, preserving key information:\n\n{text}"
)
FINAL_SYSTEM_PROMPT = (
    "You are a document summarization assistant. Create a well-structured, "
    "comprehensive summary that maintains the document's key information and flow."
)
FINAL_PROMPT_TEMPLATE = (
    "Create a comprehensive summary of the following document summaries, "
    "organizing the information in a coherent way:\n\n{text}"
)

# Chat default
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."

# Logging Configuration
LOG_FILE = LOGS_DIR / "processing.log"
DEBUG_FLOW_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


# --- Model Catalogue ---
MODEL_CONFIG_FILE = Path(__file__).parent.parent / "config" / "models.yaml"
CHUNKING_CONFIG_FILE = Path(__file__).parent.parent / "config" / "chunking_config.yaml"


@dataclass(frozen=True)
class ModelDescriptor:
    """
    Immutable description of a downloadable model asset.

    Attributes:
        id: Stable key used by the runtime and for persisted flags.
        name: Human display name.
        size_gb: Approximate asset size in gigabytes (None if unknown).
        tags: Capability tags (e.g. "chat", "summarize").
    """
    id: str
    name: str
    size_gb: float | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def size_label(self) -> str:
        if self.size_gb is None:
            return "Size unknown"
        return f"{self.size_gb:.1f} GB"


_FALLBACK_MODELS = [
    ModelDescriptor("llama3.2:1b", "Core 1B", 0.7, ("chat", "summarize")),
    ModelDescriptor("llama3.2:3b", "Core 3B", 1.8, ("chat", "summarize")),
]

MODEL_CATALOG: list[ModelDescriptor] = []
DEFAULT_MODEL_ID: str | None = None


def _descriptor_from_entry(entry: dict) -> ModelDescriptor:
    size = entry.get('size_gb')
    return ModelDescriptor(
        id=str(entry['id']),
        name=str(entry.get('name') or entry['id']),
        size_gb=float(size) if size is not None else None,
        tags=tuple(entry.get('tags') or ()),
    )


def load_model_catalog(path: Path = None) -> list[ModelDescriptor]:
    """Loads the model catalogue from config/models.yaml."""
    global MODEL_CATALOG, DEFAULT_MODEL_ID
    path = path or MODEL_CONFIG_FILE
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        entries = data.get('models', [])
        MODEL_CATALOG = [_descriptor_from_entry(e) for e in entries]
        DEFAULT_MODEL_ID = data.get('default')
        if DEBUG_MODE and MODEL_CATALOG:
            from pocketllm.logging_config import debug_log
            debug_log(f"[Config] Loaded {len(MODEL_CATALOG)} model descriptors from {path}")
    except FileNotFoundError:
        if DEBUG_MODE:
            from pocketllm.logging_config import debug_log
            debug_log(f"[Config] WARNING: Model catalogue not found at {path}. Using built-in models.")
        MODEL_CATALOG = []
    except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
        from pocketllm.logging_config import debug_log
        debug_log(f"[Config] ERROR: Failed to parse model catalogue: {e}")
        MODEL_CATALOG = []

    if not MODEL_CATALOG:
        MODEL_CATALOG = list(_FALLBACK_MODELS)
        DEFAULT_MODEL_ID = None
    return MODEL_CATALOG


def available_models() -> list[ModelDescriptor]:
    """Returns every known model descriptor."""
    if not MODEL_CATALOG:
        load_model_catalog()
    return list(MODEL_CATALOG)


def get_model_by_name(name: str) -> ModelDescriptor | None:
    """
    Looks up a descriptor by id or display name.

    Args:
        name: Model id (e.g. 'llama3.2:1b') or display name (e.g. 'Core 1B').

    Returns:
        The matching ModelDescriptor, or None if the model is unknown.
    """
    for model in available_models():
        if name in (model.id, model.name):
            return model
    return None


def default_model() -> ModelDescriptor:
    """Returns the configured default model (first catalogue entry if unset)."""
    models = available_models()
    if DEFAULT_MODEL_ID:
        model = get_model_by_name(DEFAULT_MODEL_ID)
        if model:
            return model
    return models[0]


def load_chunking_config(path: Path = None) -> dict:
    """
    Loads document pipeline sizes from config/chunking_config.yaml.

    Missing keys (or a missing file) fall back to the module constants.
    """
    settings = {
        'max_chunk_size': MAX_CHUNK_SIZE,
        'max_summary_input_size': MAX_SUMMARY_INPUT_SIZE,
        'sentence_language': SENTENCE_LANGUAGE,
    }
    path = path or CHUNKING_CONFIG_FILE
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        settings.update({k: v for k, v in (data.get('chunking') or {}).items() if k in settings})
    except FileNotFoundError:
        pass
    return settings


# Load catalogue on module import
load_model_catalog()
# --- End Model Catalogue ---
