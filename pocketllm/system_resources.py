"""
System Resource Helpers for PocketLLM.

Reports memory figures used in model status strings and in the CLI's
`models` listing (whether a model is likely to fit in available RAM).

Usage:
    from pocketllm.system_resources import resident_memory_mb, fits_in_memory

    status = f"Loaded llama3.2:1b.  Memory: {resident_memory_mb()}M"
"""

from typing import NamedTuple

import psutil

from pocketllm.logging_config import debug_log

# Runtime overhead on top of the weights themselves (KV cache, buffers)
MODEL_MEMORY_OVERHEAD = 1.2


class ResourceInfo(NamedTuple):
    """System memory snapshot."""
    available_ram_gb: float
    total_ram_gb: float
    process_rss_mb: int


def get_system_resources() -> ResourceInfo:
    mem = psutil.virtual_memory()
    return ResourceInfo(
        available_ram_gb=mem.available / (1024 ** 3),
        total_ram_gb=mem.total / (1024 ** 3),
        process_rss_mb=resident_memory_mb(),
    )


def resident_memory_mb() -> int:
    """Resident set size of this process in megabytes."""
    return psutil.Process().memory_info().rss // (1024 * 1024)


def fits_in_memory(size_gb: float | None) -> bool:
    """
    Whether a model of the given asset size should fit in available RAM.

    Unknown sizes are assumed to fit.
    """
    if size_gb is None:
        return True
    resources = get_system_resources()
    needed = size_gb * MODEL_MEMORY_OVERHEAD
    debug_log(
        f"[RESOURCES] Model needs ~{needed:.1f} GB, "
        f"{resources.available_ram_gb:.1f} GB available"
    )
    return needed <= resources.available_ram_gb
