"""Hashing utilities for cache keys and content deduplication."""

import hashlib


def get_file_hash(content: bytes) -> str:
    """SHA256 hex digest of raw file content."""
    return hashlib.sha256(content).hexdigest()
