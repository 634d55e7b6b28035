"""
Unified Logging Configuration for PocketLLM

Combines three outputs behind one small set of functions:
- The standard `logging` logger named 'pocketllm' (logs/processing.log)
- A debug flow file (logs/debug_flow.txt) with every debug message
- Console echo of debug messages when DEBUG_MODE is on

All modules import their logging helpers from here:
    from pocketllm.logging_config import debug_log, info, warning, error, Timer

Prefix messages with a component tag so the flow file reads as a trace:
    debug_log("[LIFECYCLE] Loading local model llama3.2:1b")
    debug_log("[PIPELINE] Stage -> SUMMARIZING (0.50)")
"""

import logging
import sys
import threading
import time
from datetime import datetime

from pocketllm.config import DEBUG_FLOW_FILE, DEBUG_MODE, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT


class _DebugFlowFile:
    """
    Append-only writer for debug_flow.txt.

    The file is opened on first write so that importing the package never
    touches the filesystem beyond the directories config.py creates.
    """

    def __init__(self, path):
        self.path = path
        self._handle = None
        self._lock = threading.Lock()

    def _open(self):
        self._handle = open(self.path, 'a', encoding='utf-8')
        self._handle.write(f"=== PocketLLM Debug Log (started {datetime.now().isoformat()}) ===\n")
        self._handle.write(f"DEBUG_MODE: {DEBUG_MODE}\n\n")

    def write(self, message: str):
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        with self._lock:
            try:
                if self._handle is None:
                    self._open()
                self._handle.write(f"[{timestamp}] {message}\n")
                self._handle.flush()
            except OSError:
                # Logging must never take the caller down
                self._handle = None

    def close(self):
        with self._lock:
            if self._handle:
                self._handle.write(f"=== Ended: {datetime.now().isoformat()} ===\n")
                self._handle.close()
                self._handle = None


_debug_flow = _DebugFlowFile(DEBUG_FLOW_FILE)


def _setup_standard_logging() -> logging.Logger:
    """Configure the 'pocketllm' logger (file handler always, console in DEBUG_MODE)."""
    logger = logging.getLogger('pocketllm')
    logger.setLevel(logging.DEBUG if DEBUG_MODE else logging.INFO)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    try:
        file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError:
        pass  # Log directory not writable; console/flow file still work

    if DEBUG_MODE:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


_logger = _setup_standard_logging()


class Timer:
    """
    Context manager that logs how long a block took.

    Usage:
        with Timer("PDF extraction"):
            text = extractor.extract(path, "pdf")

    Attributes:
        operation_name: Name of the operation being timed
        duration_ms: Duration in milliseconds (available after exit)
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.start_time: float | None = None
        self.duration_ms: float | None = None

    def __enter__(self):
        if self.auto_log:
            debug_log(f"Starting {self.operation_name}...")
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        if self.auto_log:
            debug_timing(self.operation_name, self.duration_ms / 1000)
        return False


def debug_log(message: str):
    """
    Log a debug message: always to the flow file, to the console in DEBUG_MODE.

    Args:
        message: The message to log (prefix with [COMPONENT] for clarity)
    """
    _debug_flow.write(message)
    _logger.debug(message)


def debug(message: str):
    """Alias for debug_log()."""
    debug_log(message)


def info(message: str):
    """Log an informational message."""
    _debug_flow.write(f"[INFO] {message}")
    _logger.info(message)


def warning(message: str):
    """Log a warning (always reaches the log file)."""
    _debug_flow.write(f"[WARNING] {message}")
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error message.

    Args:
        message: The error message to log
        exc_info: Include the active exception's traceback (DEBUG_MODE only)
    """
    _debug_flow.write(f"[ERROR] {message}")
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


def critical(message: str, exc_info: bool = True):
    """Log a critical error, with traceback in DEBUG_MODE."""
    _debug_flow.write(f"[CRITICAL] {message}")
    _logger.critical(message, exc_info=exc_info and DEBUG_MODE)


def debug_timing(operation: str, elapsed_seconds: float):
    """
    Log elapsed time in human-readable units.

    Example:
        start = time.time()
        chunks = chunker.chunk(text)
        debug_timing("[CHUNKER] Chunking", time.time() - start)
    """
    if elapsed_seconds < 1:
        time_str = f"{elapsed_seconds * 1000:.0f} ms"
    elif elapsed_seconds < 60:
        time_str = f"{elapsed_seconds:.2f}s"
    else:
        time_str = f"{elapsed_seconds / 60:.1f}m"
    debug_log(f"{operation} took {time_str}")


def close_debug_log():
    """Flush and close the debug flow file (call at shutdown)."""
    _debug_flow.close()


__all__ = [
    'debug_log',
    'debug',
    'debug_timing',
    'info',
    'warning',
    'error',
    'critical',
    'close_debug_log',
    'Timer',
    'DEBUG_MODE',
]
