"""
Data models for diskstash.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class IndexEntry:
    """Last-access time and on-disk size of one cached file."""

    last_access: int  # epoch milliseconds
    size: int = 0


@dataclass
class CacheStats:
    """Point-in-time view of a cache store."""

    cache_dir: Path
    total_size: int
    total_count: int
    size_limit: int
    count_limit: Optional[int] = None
    ready: bool = False
