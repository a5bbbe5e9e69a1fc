"""
Custom exceptions for diskstash.
"""


class DiskStashError(Exception):
    """Base exception for all diskstash errors."""


class ConfigError(DiskStashError):
    """Configuration errors."""


class CacheDirectoryError(DiskStashError):
    """Cache directory cannot be created or used."""


class InvalidKeyError(DiskStashError, ValueError):
    """Key cannot be used as a file name inside the cache directory."""
