"""
Bounded, disk-backed key-value store.

Each key is stored as one file directly inside the cache directory. The
store keeps an in-memory index of entries ordered by last access and running
size/count totals, and evicts least recently used entries whenever a write
would push the cache over its size or count limit. File modification times
mirror the last-access timestamps so LRU order survives a restart.

Concurrency:
- All index and counter mutations happen under the index lock; eviction
  (read totals, pick victim, delete, update totals) is one critical section.
- File contents are written to a temporary file and renamed over the target,
  so a concurrent reader sees either the old or the new payload. The rename
  and the delete of an expired entry both run under the index lock, and the
  delete re-checks the file first, so a newer write is never removed.
- The startup directory scan runs on a background worker. Until it finishes
  the totals undercount and eviction may under-trigger; callers that need
  exact accounting right away can call ``wait_until_ready()``.

Limits are soft: if nothing is left to evict the new entry is still admitted.
"""

import contextlib
import logging
import os
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Callable, Optional, Union

from diskstash import expiration
from diskstash.config import CacheSettings
from diskstash.index import Counters, EntryIndex
from diskstash.models import CacheStats, IndexEntry
from diskstash.utils import TEMP_PREFIX, ensure_cache_dir, validate_key

logger = logging.getLogger(__name__)

DEFAULT_SIZE_LIMIT = 10_000_000  # bytes

# Enough to hold any realistic header (13 + 1 + ttl digits + 1)
HEADER_PROBE_BYTES = 64


class CacheStore:
    """Disk-backed byte store with TTL expiration and size/count-bounded LRU eviction."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        size_limit: int = DEFAULT_SIZE_LIMIT,
        count_limit: Optional[int] = None,
        default_ttl: Optional[int] = None,
        scan_in_background: bool = True,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize store and start indexing existing files.

        Args:
            cache_dir: Directory holding one file per key (created if missing)
            size_limit: Maximum total bytes on disk
            count_limit: Maximum number of entries (None = unbounded)
            default_ttl: TTL in seconds applied when put() gets none (None = never expire)
            scan_in_background: Index existing files on a worker thread
            clock: Callable returning current time in epoch ms

        Raises:
            CacheDirectoryError: If the cache directory can't be created
            ValueError: If a limit is not positive
        """
        if size_limit <= 0:
            raise ValueError(f"size_limit must be positive, got {size_limit}")
        if count_limit is not None and count_limit < 1:
            raise ValueError(f"count_limit must be at least 1, got {count_limit}")

        self.cache_dir = ensure_cache_dir(Path(cache_dir))
        self.size_limit = size_limit
        self.count_limit = count_limit
        self.default_ttl = default_ttl
        self._clock = clock or expiration.now_ms
        self._index = EntryIndex()
        self._counters = Counters()

        if scan_in_background:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="diskstash-scan")
            self._scan_future = executor.submit(self._scan_directory)
            executor.shutdown(wait=False)
        else:
            self._scan_future = Future()
            self._scan_future.set_result(self._scan_directory())

    @classmethod
    def from_settings(cls, settings: CacheSettings, **kwargs) -> "CacheStore":
        """Build a store from validated CacheSettings."""
        return cls(
            cache_dir=settings.cache_dir,
            size_limit=settings.size_limit,
            count_limit=settings.count_limit,
            default_ttl=settings.default_ttl,
            scan_in_background=settings.scan_in_background,
            **kwargs,
        )

    def __len__(self) -> int:
        return self._counters.count

    def new_path(self, key: str) -> Path:
        """
        Map a key to its file path.

        The key is used verbatim as the file name.

        Raises:
            InvalidKeyError: If the key is not a single plain path segment
        """
        return self.cache_dir / validate_key(key)

    def put(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        """
        Store bytes under key, evicting old entries if over budget.

        Write failures are logged, not raised; accounting still runs for
        whatever ended up on disk.

        Args:
            key: Cache key (must be a valid file name)
            value: Payload bytes
            ttl_seconds: Time-to-live; None uses the store default, <= 0 never expires
        """
        path = self.new_path(key)
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"Cache values must be bytes-like, got {type(value).__name__}")
        data = expiration.encode(ttl, bytes(value), now=self._clock())

        try:
            self._write_file(path, data)
        except OSError as e:
            logger.error(f"Failed to write cache entry {key!r}: {e}")

        self._admit(path)

    def get(self, key: str) -> Optional[bytes]:
        """
        Read the payload stored under key.

        Expired entries are deleted on the way out. Absent, expired and
        unreadable entries all return None.
        """
        path = self.new_path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read cache entry {key!r}: {e}")
            return None

        now = self._clock()
        if expiration.is_expired(data, now=now):
            if self._remove_expired(path, now):
                logger.debug(f"Cache entry {key!r} expired")
            return None

        self._refresh(path)
        return expiration.strip(data)

    def contains(self, key: str) -> bool:
        """Check for a live entry without refreshing its access time."""
        data = self._read_prefix(self.new_path(key))
        return data is not None and not expiration.is_expired(data, now=self._clock())

    def remove(self, key: str) -> bool:
        """
        Delete the entry for key.

        Safe to call for keys that were never stored; only indexed entries
        change the totals.

        Returns:
            True if a file was deleted
        """
        path = self.new_path(key)
        with self._index.lock:
            deleted = self._delete_file(path)
            entry = self._index.forget(path)
            if entry is not None:
                self._counters.add(-entry.size, -1)
        return deleted

    def clear(self) -> None:
        """Delete every file in the cache directory and reset the index."""
        with self._index.lock:
            self._index.clear()
            self._counters.reset()
            try:
                with os.scandir(self.cache_dir) as entries:
                    for dir_entry in entries:
                        if dir_entry.is_file(follow_symlinks=False) or dir_entry.is_symlink():
                            self._delete_file(Path(dir_entry.path))
            except OSError as e:
                logger.error(f"Failed to clear cache directory {self.cache_dir}: {e}")
        logger.debug(f"Cleared cache directory {self.cache_dir}")

    def cleanup_expired(self) -> int:
        """
        Remove all indexed entries whose TTL has passed.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        removed = 0
        for path, _ in self._index.items():
            data = self._read_prefix(path)
            if data is not None and expiration.is_expired(data, now=now):
                if self._remove_expired(path, now):
                    removed += 1

        if removed:
            logger.info(f"Removed {removed} expired cache entries")
        return removed

    def stats(self) -> CacheStats:
        total_size, total_count = self._counters.snapshot()
        return CacheStats(
            cache_dir=self.cache_dir,
            total_size=total_size,
            total_count=total_count,
            size_limit=self.size_limit,
            count_limit=self.count_limit,
            ready=self.ready,
        )

    @property
    def ready(self) -> bool:
        """Whether the startup scan has finished."""
        return self._scan_future.done()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the startup scan has finished.

        Args:
            timeout: Maximum seconds to wait (None = wait indefinitely)

        Returns:
            True if the scan finished, False on timeout
        """
        try:
            self._scan_future.result(timeout=timeout)
        except FuturesTimeoutError:
            return False
        return True

    def _admit(self, path: Path) -> None:
        """Account for a freshly written file and evict until within limits."""
        now = self._clock()
        with self._index.lock:
            try:
                size = path.stat().st_size
            except FileNotFoundError:
                # Removed or cleared between write and accounting
                return
            except OSError as e:
                logger.warning(f"Failed to stat cache entry {path.name!r}: {e}")
                return

            previous = self._index.get(path)
            if previous is None:
                if self.count_limit is not None:
                    while self._counters.count + 1 > self.count_limit:
                        if not self._evict_one(exclude=path):
                            break
                self._counters.add(count_delta=1)
                size_delta = size
            else:
                size_delta = size - previous.size

            while self._counters.size + size_delta > self.size_limit:
                if not self._evict_one(exclude=path):
                    break
            self._counters.add(size_delta=size_delta)
            self._index.touch(path, now, size)

        self._set_mtime(path, now)

    def _evict_one(self, exclude: Optional[Path] = None) -> bool:
        """
        Delete the least recently used entry.

        Must be called with the index lock held.

        Returns:
            False if there was nothing to evict
        """
        victim = self._index.snapshot_least_recently_used(exclude=exclude)
        if victim is None:
            return False

        entry = self._index.forget(victim)
        self._delete_file(victim)
        self._counters.add(-entry.size, -1)
        logger.debug(f"Evicted cache entry {victim.name!r} ({entry.size} bytes)")
        return True

    def _trim_to_limits(self) -> None:
        with self._index.lock:
            evicted = 0
            while self.count_limit is not None and self._counters.count > self.count_limit:
                if not self._evict_one():
                    break
                evicted += 1
            while self._counters.size > self.size_limit:
                if not self._evict_one():
                    break
                evicted += 1

        if evicted:
            logger.info(f"Evicted {evicted} entries to bring cache within limits")

    def _refresh(self, path: Path) -> None:
        """Record a successful read; the mtime is updated even before the scan has indexed the file."""
        now = self._clock()
        with self._index.lock:
            if self._index.contains(path):
                self._index.touch(path, now)
        self._set_mtime(path, now)

    def _remove_expired(self, path: Path, now: int) -> bool:
        """
        Delete an entry seen as expired, unless it was rewritten since.

        The file is checked again under the index lock, which also guards the
        rename in _write_file, so a newer payload is never deleted.

        Returns:
            True if the expired entry was removed
        """
        with self._index.lock:
            data = self._read_prefix(path)
            if data is None or not expiration.is_expired(data, now=now):
                return False
            self._delete_file(path)
            entry = self._index.forget(path)
            if entry is not None:
                self._counters.add(-entry.size, -1)
        return True

    def _scan_directory(self) -> int:
        """
        Index files already present in the cache directory.

        Files are added oldest first behind anything indexed since the store
        was created; entries written concurrently are not counted twice.

        Returns:
            Number of files indexed
        """
        found = []
        try:
            with os.scandir(self.cache_dir) as entries:
                for dir_entry in entries:
                    if dir_entry.name.startswith(TEMP_PREFIX):
                        continue
                    try:
                        if not dir_entry.is_file(follow_symlinks=False):
                            continue
                        stat = dir_entry.stat(follow_symlinks=False)
                    except OSError:
                        continue
                    found.append((stat.st_mtime_ns // 1_000_000, Path(dir_entry.path), stat.st_size))
        except OSError as e:
            logger.error(f"Failed to scan cache directory {self.cache_dir}: {e}")
            return 0

        # Newest first, each pushed to the front: oldest ends up least recently used
        found.sort(key=lambda item: item[0], reverse=True)
        indexed = 0
        for mtime, path, size in found:
            with self._index.lock:
                if not path.exists():
                    continue
                if self._index.add_oldest(path, IndexEntry(last_access=mtime, size=size)):
                    self._counters.add(size, 1)
                    indexed += 1

        total_size, total_count = self._counters.snapshot()
        logger.info(
            f"Indexed {indexed} cached files in {self.cache_dir} "
            f"({total_count} entries, {total_size} bytes)"
        )
        self._trim_to_limits()
        return indexed

    def _write_file(self, path: Path, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=self.cache_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            with self._index.lock:
                os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise

    def _delete_file(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete cache file {path}: {e}")
            return False
        return True

    def _read_prefix(self, path: Path) -> Optional[bytes]:
        try:
            with open(path, "rb") as f:
                return f.read(HEADER_PROBE_BYTES)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read cache file {path}: {e}")
            return None

    def _set_mtime(self, path: Path, timestamp_ms: int) -> None:
        ns = timestamp_ms * 1_000_000
        try:
            os.utime(path, ns=(ns, ns))
        except OSError as e:
            logger.debug(f"Failed to update mtime of {path}: {e}")
