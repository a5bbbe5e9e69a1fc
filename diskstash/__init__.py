"""
Bounded, disk-backed key-value cache with TTL expiration and LRU eviction.
"""

from diskstash.config import CacheSettings, DiskStashConfig, load_config
from diskstash.exceptions import (
    CacheDirectoryError,
    ConfigError,
    DiskStashError,
    InvalidKeyError,
)
from diskstash.models import CacheStats
from diskstash.store import CacheStore

__all__ = [
    "CacheStore",
    "CacheSettings",
    "CacheStats",
    "DiskStashConfig",
    "load_config",
    "DiskStashError",
    "ConfigError",
    "CacheDirectoryError",
    "InvalidKeyError",
]
