"""
config_cache.py
- Read-through, TTL-bounded cache of raw manifest bytes over a manifest store.
- Shared by every concurrent reconcile pass for the lifetime of the process.
- Concurrent misses for one path wait on a per-path lock and re-check, so only one
  backing fetch runs; hits only take the map lock, which is never held during a fetch.
- A failed fetch propagates to the caller; expired entries are never served as fallback.
"""

import threading
import time
from dataclasses import dataclass

from loguru import logger


@dataclass(frozen=True)
class CacheEntry:
    path: str
    payload: bytes
    fetched_at: float


class ConfigCache:
    def __init__(self, store, clock=time.monotonic):
        self.store = store
        self._clock = clock
        self._lock = threading.Lock()
        self._entries = {}
        self._fetch_locks = {}

    def _fresh_entry(self, path, ttl):
        with self._lock:
            entry = self._entries.get(path)
        if entry is not None and self._clock() - entry.fetched_at < ttl:
            return entry
        return None

    def _fetch_lock(self, path):
        with self._lock:
            return self._fetch_locks.setdefault(path, threading.Lock())

    def read(self, path, ttl):
        """
        Return the bytes stored at `path`, fetching them if no entry is younger than `ttl`.

        Args:
            path (str): Store-relative manifest path.
            ttl (float): Maximum entry age in seconds.

        Returns:
            bytes: The cached or freshly fetched payload.
        """
        entry = self._fresh_entry(path, ttl)
        if entry is not None:
            return entry.payload

        with self._fetch_lock(path):
            # another caller may have refreshed while we waited
            entry = self._fresh_entry(path, ttl)
            if entry is not None:
                return entry.payload

            logger.debug(f"[config_cache] Fetching {path} from {self.store}")
            payload = self.store.read_path(path)
            with self._lock:
                self._entries[path] = CacheEntry(path=path, payload=payload, fetched_at=self._clock())
            return payload
