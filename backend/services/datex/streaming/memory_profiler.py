"""
Memory Profiling Utilities for Streaming Extraction

Tools for checking that extraction memory stays bounded while a feed of any
length is processed.

Features:
1. Peak memory tracking for one run
2. Memory limit assertion for tests
"""

import tracemalloc
import gc
from typing import Tuple
from contextlib import contextmanager

from ..utils.logging import log


def format_bytes(bytes_value: float) -> str:
    """
    Format bytes as human-readable string.

    Examples:
        >>> format_bytes(1536)
        '1.50 KB'
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_value < 1024.0:
            return f"{bytes_value:.2f} {unit}"
        bytes_value /= 1024.0
    return f"{bytes_value:.2f} PB"


class MemoryProfiler:
    """
    Memory profiler for tracking memory usage.

    Uses tracemalloc for accurate Python memory tracking.
    """

    def __init__(self):
        self.is_tracing = False
        self.result: Tuple[int, int] = (0, 0)

    def start(self):
        """Start memory tracing."""
        if not self.is_tracing:
            tracemalloc.start()
            self.is_tracing = True

    def stop(self) -> Tuple[int, int]:
        """
        Stop memory tracing and return final statistics.

        Returns:
            Tuple of (current_bytes, peak_bytes)
        """
        if self.is_tracing:
            current, peak = tracemalloc.get_traced_memory()
            tracemalloc.stop()
            self.is_tracing = False
            return (current, peak)
        return (0, 0)


@contextmanager
def profile_memory(label: str = "Operation", verbose: bool = True):
    """
    Context manager for profiling memory usage of a code block.

    Args:
        label: Label for the profiled operation
        verbose: Log results when the block exits

    Yields:
        MemoryProfiler instance (its `result` attribute holds
        (current_bytes, peak_bytes) after exit)

    Example:
        ```python
        with profile_memory("Feed extraction"):
            extract_pairs(stream, sys.stdout)
        ```
    """
    profiler = MemoryProfiler()
    gc.collect()
    profiler.start()

    try:
        yield profiler
    finally:
        current, peak = profiler.stop()
        profiler.result = (current, peak)

        if verbose:
            log(f"[MEMORY] {label}: current {format_bytes(current)}, peak {format_bytes(peak)}")


@contextmanager
def assert_memory_limit(max_bytes: int, label: str = "Operation"):
    """
    Context manager that asserts traced memory peak stays below a limit.

    Raises:
        AssertionError: If the peak exceeds max_bytes

    Example:
        ```python
        with assert_memory_limit(5_000_000, "Extraction"):
            extract_pairs(stream, sink)
        ```
    """
    profiler = MemoryProfiler()
    profiler.start()

    try:
        yield profiler
    finally:
        current, peak = profiler.stop()

    if peak > max_bytes:
        raise AssertionError(
            f"[MEMORY] {label} exceeded limit: "
            f"{format_bytes(peak)} > {format_bytes(max_bytes)}"
        )
