"""
In-memory entry index and running size/count totals.
"""

import threading
from collections import OrderedDict
from pathlib import Path
from typing import List, Optional, Tuple

from diskstash.models import IndexEntry


class EntryIndex:
    """
    Access-ordered mapping from cached file path to IndexEntry.

    The least recently used entry is always first, so picking an eviction
    victim does not need a scan. All access goes through ``lock``, which is
    reentrant so that callers can hold it across a read-scan-mutate sequence.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._entries: "OrderedDict[Path, IndexEntry]" = OrderedDict()

    def touch(self, path: Path, timestamp: int, size: Optional[int] = None) -> IndexEntry:
        """
        Record an access, making the entry the most recently used.

        Args:
            path: Cached file path
            timestamp: Access time in epoch ms
            size: New on-disk size (None keeps the recorded size)

        Returns:
            The updated entry
        """
        with self.lock:
            entry = self._entries.get(path)
            if entry is None:
                entry = IndexEntry(last_access=timestamp, size=size or 0)
                self._entries[path] = entry
            else:
                entry.last_access = timestamp
                if size is not None:
                    entry.size = size
                self._entries.move_to_end(path)
            return entry

    def add_oldest(self, path: Path, entry: IndexEntry) -> bool:
        """
        Insert an entry as the least recently used one.

        Used when rebuilding from disk: anything already indexed was accessed
        after the scan started and is left alone.

        Returns:
            True if the entry was inserted
        """
        with self.lock:
            if path in self._entries:
                return False
            self._entries[path] = entry
            self._entries.move_to_end(path, last=False)
            return True

    def forget(self, path: Path) -> Optional[IndexEntry]:
        """Drop an entry, returning it if it was indexed."""
        with self.lock:
            return self._entries.pop(path, None)

    def get(self, path: Path) -> Optional[IndexEntry]:
        with self.lock:
            return self._entries.get(path)

    def contains(self, path: Path) -> bool:
        with self.lock:
            return path in self._entries

    def snapshot_least_recently_used(self, exclude: Optional[Path] = None) -> Optional[Path]:
        """
        Return the least recently used path.

        Args:
            exclude: Path that must not be chosen (e.g. the entry being written)

        Returns:
            Oldest indexed path, or None if nothing is eligible
        """
        with self.lock:
            for path in self._entries:
                if path != exclude:
                    return path
            return None

    def items(self) -> List[Tuple[Path, IndexEntry]]:
        """Copy of all entries, least recently used first."""
        with self.lock:
            return list(self._entries.items())

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)


class Counters:
    """Thread-safe running totals of cached bytes and entries."""

    def __init__(self):
        self._lock = threading.Lock()
        self._size = 0
        self._count = 0

    @property
    def size(self) -> int:
        with self._lock:
            return self._size

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def add(self, size_delta: int = 0, count_delta: int = 0) -> Tuple[int, int]:
        """
        Apply deltas atomically.

        Returns:
            (size, count) after the update
        """
        with self._lock:
            self._size += size_delta
            self._count += count_delta
            return self._size, self._count

    def reset(self) -> None:
        with self._lock:
            self._size = 0
            self._count = 0

    def snapshot(self) -> Tuple[int, int]:
        with self._lock:
            return self._size, self._count
