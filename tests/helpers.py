"""
Test helper functions and utilities.
"""
import os
from pathlib import Path
from typing import List


class FakeClock:
    """Manually advanced millisecond clock for deterministic expiration tests."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def write_cache_file(cache_dir: Path, key: str, data: bytes, mtime_ms: int = None) -> Path:
    """
    Create a cache file directly on disk, bypassing the store.

    Args:
        cache_dir: Cache directory
        key: File name
        data: File contents
        mtime_ms: Optional modification time in epoch ms

    Returns:
        Path to created file
    """
    path = cache_dir / key
    path.write_bytes(data)
    if mtime_ms is not None:
        ns = mtime_ms * 1_000_000
        os.utime(path, ns=(ns, ns))
    return path


def list_cache_files(cache_dir: Path) -> List[str]:
    """Sorted names of regular files in a cache directory."""
    return sorted(p.name for p in cache_dir.iterdir() if p.is_file())
