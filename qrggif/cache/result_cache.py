"""Bounded result cache shared across pipeline runs within a process.

Entries expire ``ttl_ms`` after insertion. Expired entries are only occluded by
``get``, never purged by it; they still occupy capacity until evicted or
cleared. Eviction is FIFO on insertion order, reads do not refresh an entry.

The cache is not synchronized; multi-threaded callers must serialize access.
"""

import csv
import io
import json
import logging
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json")


def epoch_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """One cached value.

    Attributes:
        key: Cache key
        value: Stored value
        inserted_at_ms: Insertion time in epoch milliseconds
    """

    key: Hashable
    value: Any
    inserted_at_ms: int


def _exportable(value: Any) -> Any:
    """Convert a cached value to JSON-compatible data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def _iso_utc(epoch_millis: int) -> str:
    return datetime.fromtimestamp(epoch_millis / 1000, tz=timezone.utc).isoformat()


class ResultCache:
    """FIFO cache with time-to-live occlusion and a side store for artifacts.

    Args:
        capacity: Maximum number of entries
        ttl_ms: Entry lifetime in milliseconds
        clock: Callable returning the current time in epoch milliseconds

    Example:
        >>> cache = ResultCache(capacity=2)
        >>> cache.set("a", 1)
        >>> cache.get("a")
        1
    """

    def __init__(
        self,
        capacity: int = 100,
        ttl_ms: int = 3_600_000,
        clock: Optional[Callable[[], int]] = None,
    ):
        if capacity < 1:
            raise ValueError(f"Cache capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.ttl_ms = ttl_ms
        self.clock = clock or epoch_ms
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._artifacts: Dict[Hashable, Dict[str, np.ndarray]] = {}

    def set(self, key: Hashable, value: Any) -> None:
        """Insert a value, evicting the oldest entry when full.

        Setting an existing key re-inserts it as the newest entry with a fresh
        timestamp.
        """
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            self._artifacts.pop(evicted, None)
            logger.debug(f"Cache full, evicted '{evicted}'")

        self._entries[key] = CacheEntry(key=key, value=value, inserted_at_ms=self.clock())

    def get(self, key: Hashable) -> Optional[Any]:
        """Get a live value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.inserted_at_ms < self.ttl_ms:
            return entry.value
        return None

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[Hashable]:
        """Stored keys in insertion order, expired ones included."""
        return list(self._entries)

    def clear(self) -> None:
        """Drop every entry and artifact."""
        self._entries.clear()
        self._artifacts.clear()

    def set_artifact(self, key: Hashable, stage: str, raster: np.ndarray) -> None:
        """Store an intermediate raster for a cached key."""
        self._artifacts.setdefault(key, {})[stage] = raster

    def get_artifact(self, key: Hashable, stage: str) -> Optional[np.ndarray]:
        """Get a stored intermediate raster, or None."""
        return self._artifacts.get(key, {}).get(stage)

    def artifact_stages(self, key: Hashable) -> List[str]:
        """Stage names stored for a key."""
        return list(self._artifacts.get(key, {}))

    def live_entries(self) -> List[CacheEntry]:
        """Entries that have not expired, in insertion order."""
        now = self.clock()
        return [
            entry
            for entry in self._entries.values()
            if now - entry.inserted_at_ms < self.ttl_ms
        ]

    def export(self, format: str = "csv") -> str:
        """Serialize live entries for offline inspection.

        Args:
            format: "csv" (key,value,timestamp with JSON-encoded values) or
                "json" (indented array of objects)

        Returns:
            Serialized entries; an empty cache yields a header line or "[]"

        Raises:
            ValueError: If the format is unknown
        """
        if format not in EXPORT_FORMATS:
            raise ValueError(f"Unknown export format '{format}', expected one of {EXPORT_FORMATS}")

        rows = [
            {
                "key": str(entry.key),
                "value": _exportable(entry.value),
                "timestamp": _iso_utc(entry.inserted_at_ms),
            }
            for entry in self.live_entries()
        ]

        if format == "json":
            return json.dumps(rows, indent=2, ensure_ascii=False)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["key", "value", "timestamp"])
        for row in rows:
            writer.writerow(
                [row["key"], json.dumps(row["value"], ensure_ascii=False), row["timestamp"]]
            )
        return buffer.getvalue()
