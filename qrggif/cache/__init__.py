"""In-process result cache with FIFO eviction and TTL occlusion."""

from .result_cache import CacheEntry, ResultCache, epoch_ms

__all__ = ["CacheEntry", "ResultCache", "epoch_ms"]
