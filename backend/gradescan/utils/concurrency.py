"""
Concurrency utilities - semaphores and chunking for resource-limited operations.
"""

import asyncio
from typing import Iterator, List, Sequence, TypeVar

T = TypeVar("T")

# Concurrent PDF-to-image conversions allowed per batch, to avoid memory spikes
MAX_CONCURRENT_CONVERSIONS = 3


def new_conversion_semaphore() -> asyncio.Semaphore:
    """
    Semaphore bounding PDF conversions. Create it inside the running loop
    that will use it: an asyncio semaphore stays bound to the first loop it
    waits on.
    """
    return asyncio.Semaphore(MAX_CONCURRENT_CONVERSIONS)


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most size items."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
