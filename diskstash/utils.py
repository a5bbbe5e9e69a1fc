"""
Shared utility functions for diskstash.

This module provides cache directory resolution and key validation.
"""

import os
import logging
from pathlib import Path

from diskstash.exceptions import CacheDirectoryError, InvalidKeyError

logger = logging.getLogger(__name__)

# Name prefix of in-flight write files; keys may not use it
TEMP_PREFIX = ".diskstash-tmp-"


def get_default_cache_dir() -> Path:
    """
    Get the default cache directory from environment variable or default.

    Reads the DISKSTASH_CACHE_DIR environment variable. If it is not set,
    defaults to ``~/.cache/diskstash``. The directory is not created here.

    Returns:
        Path object pointing to the cache directory
    """
    cache_dir_str = os.getenv("DISKSTASH_CACHE_DIR")
    if cache_dir_str:
        return Path(cache_dir_str)
    return Path.home() / ".cache" / "diskstash"


def ensure_cache_dir(cache_dir: Path) -> Path:
    """
    Create the cache directory if it doesn't exist.

    Args:
        cache_dir: Directory that will hold one file per cache key

    Returns:
        The directory path

    Raises:
        CacheDirectoryError: If the directory cannot be created or is not a directory
    """
    cache_dir = Path(cache_dir)
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create cache directory {cache_dir}: {e}")
        raise CacheDirectoryError(f"Can't create cache directory {cache_dir}: {e}") from e

    if not cache_dir.is_dir():
        raise CacheDirectoryError(f"Cache path is not a directory: {cache_dir}")

    logger.debug(f"Cache directory: {cache_dir}")
    return cache_dir


def validate_key(key: str) -> str:
    """
    Check that a key can be used directly as a file name.

    Keys are not escaped or hashed, so they must be a single, plain path
    segment: non-empty, without path separators or NUL bytes, not ``.`` or
    ``..``, and not starting with the reserved temporary-file prefix.

    Args:
        key: Cache key

    Returns:
        The key, unchanged

    Raises:
        InvalidKeyError: If the key is not a usable file name
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(f"Cache key must be a non-empty string, got {key!r}")
    if key in (".", ".."):
        raise InvalidKeyError(f"Cache key cannot be {key!r}")

    separators = {"/", "\x00", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    if any(sep in key for sep in separators):
        raise InvalidKeyError(f"Cache key contains a path separator: {key!r}")
    if key.startswith(TEMP_PREFIX):
        raise InvalidKeyError(f"Cache key uses reserved prefix {TEMP_PREFIX!r}: {key!r}")

    return key
